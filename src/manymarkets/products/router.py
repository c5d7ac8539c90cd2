"""Product plans (/api/products) and builder generation (/api/builder)."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from manymarkets.ai.provider import LLMClient, get_llm_client
from manymarkets.api.deps import limiter
from manymarkets.auth import get_current_profile
from manymarkets.billing.autumn import AutumnClient, get_autumn_client
from manymarkets.database import get_db
from manymarkets.exceptions import AIProviderError
from manymarkets.models import Product, Profile, ResearchSession

from .builder import generate_builder_content
from .schemas import BuilderGenerateRequest, ProductCreate, ProductResponse, ProductUpdate
from .service import has_pro_access, invalid_update, product_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])
builder_router = APIRouter(prefix="/api/builder", tags=["builder"])


def _require_pro(profile: Profile, autumn: AutumnClient) -> None:
    if not has_pro_access(profile, autumn):
        raise HTTPException(status_code=403, detail="Pro subscription required")


def _get_owned_product(db: Session, product_id: str, profile: Profile) -> Product:
    product = db.query(Product).filter(Product.id == product_id, Product.user_id == profile.id).first()
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("")
def list_products(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    query = db.query(Product).filter(Product.user_id == profile.id)
    if status:
        query = query.filter(Product.status == status)
    products = query.order_by(Product.updated_at.desc()).limit(limit).all()
    return {"products": [ProductResponse.model_validate(p) for p in products]}


@router.post("", status_code=201)
def create_product(
    body: ProductCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    """Save a chosen product suggestion as a plan (pro only)."""
    _require_pro(profile, autumn)

    if not body.name:
        raise HTTPException(status_code=400, detail="Product name is required")
    if not body.session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")

    owned_session = (
        db.query(ResearchSession.id)
        .filter(ResearchSession.id == body.session_id, ResearchSession.user_id == profile.id)
        .first()
    )
    if owned_session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    product = Product(user_id=profile.id, **product_fields(body))
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s for %s", product.id, profile.id)
    return {"product": ProductResponse.model_validate(product)}


@router.get("/{product_id}")
def get_product(product_id: str, profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    return {"product": ProductResponse.model_validate(_get_owned_product(db, product_id, profile))}


@router.patch("/{product_id}")
def update_product(
    product_id: str,
    body: ProductUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    _require_pro(profile, autumn)
    product = _get_owned_product(db, product_id, profile)

    updates = body.model_dump(exclude_unset=True)
    error = invalid_update(updates)
    if error:
        raise HTTPException(status_code=400, detail=error)

    for field, value in updates.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return {"product": ProductResponse.model_validate(product)}


@router.delete("/{product_id}")
def delete_product(product_id: str, profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    db.query(Product).filter(Product.id == product_id, Product.user_id == profile.id).delete(
        synchronize_session=False
    )
    db.commit()
    return {"success": True}


@builder_router.post("/generate")
@limiter.limit("30/minute")
def builder_generate(
    request: Request,
    body: BuilderGenerateRequest,
    profile: Profile = Depends(get_current_profile),
    llm: LLMClient = Depends(get_llm_client),
):
    """Fill one builder form field or planning task with model output."""
    if not body.task_id and not body.prompt:
        raise HTTPException(status_code=400, detail="taskId or prompt is required")

    try:
        content = generate_builder_content(llm, body)
    except AIProviderError as exc:
        logger.error("Builder generation failed for %s: %s", profile.id, exc)
        raise HTTPException(status_code=500, detail="Failed to generate content")
    return {"content": content}

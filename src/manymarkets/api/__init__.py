"""HTTP application assembly and shared route dependencies."""

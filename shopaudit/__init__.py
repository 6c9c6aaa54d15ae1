"""ShopAudit — e-commerce product content analysis."""

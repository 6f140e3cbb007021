"""E-commerce platform adapters (Shopify product import)."""

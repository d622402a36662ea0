"""TechSpec storefront API."""

"""API routers and schemas."""

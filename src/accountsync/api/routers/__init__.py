"""API routers: webhooks, csrf, user self-service, admin."""

"""API routers for skill-disclosure."""

"""REST API for skill-disclosure."""

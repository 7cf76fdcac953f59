"""Settings, logging, security, CORS policy, sessions and rate limiting."""

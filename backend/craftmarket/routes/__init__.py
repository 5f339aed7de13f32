# Overview: HTTP blueprints under /api/v1.

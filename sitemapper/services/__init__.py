"""Service containers and HTTP routes of the sitemap engine."""

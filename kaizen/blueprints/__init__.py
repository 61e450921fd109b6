"""HTTP surface: thin Flask blueprints over the kaizen services (``/api/v1``)."""

"""Import pipelines, billing and orchestration services."""

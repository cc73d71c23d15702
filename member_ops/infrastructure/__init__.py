"""Infrastructure layer: cache backends, data store adapter and monitoring."""

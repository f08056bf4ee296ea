"""Front ends that host sync sessions inside a UI toolkit."""

"""Pipeline stages: build, package, notify, and the orchestrating pipeline."""

"""Lambda-facing API modules for the pipeline proxy."""

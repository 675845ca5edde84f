"""Cache services shared by the API and the pipeline."""

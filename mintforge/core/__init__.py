"""Core upload-and-reconcile pipeline."""

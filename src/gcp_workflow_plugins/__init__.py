"""
GCP workflow plugins.

Bridges a workflow orchestrator to Google Cloud Storage: a polling trigger
that watches a bucket location, materializes new objects into workflow-scoped
temp storage and moves or deletes them so they are detected only once.
"""

__version__ = "0.1.0"

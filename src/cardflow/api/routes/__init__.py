"""API route modules for cardflow."""

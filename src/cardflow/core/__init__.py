"""Core domain packages for cardflow."""

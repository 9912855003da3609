"""JOBPORTAL API package."""

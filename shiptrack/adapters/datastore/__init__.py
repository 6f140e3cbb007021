"""Datastore adapters.

The hosted relational database is an external collaborator; the service
only depends on owner-scoped row CRUD. The in-memory backend keeps the
service runnable without one.
"""

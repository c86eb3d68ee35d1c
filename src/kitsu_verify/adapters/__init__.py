"""Adapters - Collaborator implementations of the domain ports."""

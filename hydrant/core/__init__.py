"""Core data models for hydrant."""

from .models import Target

__all__ = ["Target"]

"""
Abstract base model shared by the domain apps.

Usage:
    from core.models import BaseModel

    class Chat(BaseModel):
        name = models.CharField(max_length=100, blank=True)
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Creation and last-activity timestamps.

    Subclasses that sort by activity bump ``updated_at`` through a
    queryset ``update()`` rather than a full save, so ``auto_now`` is
    only a floor for direct saves.
    """

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

"""Database models for the link placer app.

The app stores sites (domains), the pages of each site that suggestions may
link to, and one record per placement run so later runs on the same
document can take earlier accepted links into account.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from .engine.links import normalize_path
from .engine.types import MONEY_PAGE, STANDARD_CONTENT, STRATEGIC_PILLAR


class Domain(models.Model):
    """Represents a website/domain whose pages form the link inventory."""

    base_url = models.URLField(unique=True)
    hostname = models.CharField(max_length=255, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.base_url


class Link(models.Model):
    """A page of a domain that suggestions may point at."""

    ROLE_CHOICES = [
        (MONEY_PAGE, 'High-value conversion page'),
        (STRATEGIC_PILLAR, 'Pillar / authority page'),
        (STANDARD_CONTENT, 'Standard content'),
    ]

    domain = models.ForeignKey(Domain, on_delete=models.CASCADE, related_name='links')
    url = models.URLField()
    path = models.CharField(max_length=500, db_index=True, blank=True)
    title = models.CharField(max_length=300, blank=True)
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('domain', 'url')

    def save(self, *args, **kwargs) -> None:
        self.path = normalize_path(self.url)
        super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return self.url


class PlacementRun(models.Model):
    """Stores a single placement run for a user and document."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='placement_runs',
    )
    domain = models.ForeignKey(
        Domain,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='placement_runs',
    )
    document_key = models.CharField(max_length=255, blank=True, db_index=True)
    source_excerpt = models.TextField()
    linked_html = models.TextField()
    candidate_total = models.PositiveIntegerField(default=0)
    accepted_total = models.PositiveIntegerField(default=0)
    accepted_records = models.JSONField(default=list, blank=True)
    rejection_counts = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        domain = self.domain.hostname if self.domain else 'unknown domain'
        return f"{self.user} · {domain} · {self.created_at:%Y-%m-%d %H:%M}"

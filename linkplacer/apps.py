from django.apps import AppConfig


class LinkPlacerConfig(AppConfig):
    """Configuration for the link placer Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'linkplacer'
    verbose_name = 'Link placer'

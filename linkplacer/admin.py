from django.contrib import admin

from .models import Domain, Link, PlacementRun


@admin.register(Domain)
class DomainAdmin(admin.ModelAdmin):
    list_display = ('base_url', 'hostname', 'created_at')
    search_fields = ('base_url', 'hostname')


@admin.register(Link)
class LinkAdmin(admin.ModelAdmin):
    list_display = ('url', 'domain', 'path', 'title', 'role', 'created_at')
    list_filter = ('domain', 'role')
    search_fields = ('url', 'path', 'title')


@admin.register(PlacementRun)
class PlacementRunAdmin(admin.ModelAdmin):
    list_display = ('user', 'domain', 'document_key', 'candidate_total', 'accepted_total', 'created_at')
    list_filter = ('domain',)
    search_fields = ('document_key', 'source_excerpt')
    readonly_fields = ('accepted_records', 'rejection_counts', 'created_at')

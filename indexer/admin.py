"""
Django admin configuration for the Sitemap Indexer.

Sites are created, edited and deleted here. Submission state (dedup
records, quota counters, execution history) lives in the cache and is not
editable.
"""

from django import forms
from django.contrib import admin
from django.core.exceptions import ValidationError
from django.utils.html import format_html

from indexer.models import SubmissionSite
from indexer.services.site_config import mask_api_key
from indexer.tasks import run_site_submission


class SubmissionSiteForm(forms.ModelForm):
    """Runs the site's own validation rules on top of field validation."""

    class Meta:
        model = SubmissionSite
        fields = "__all__"

    def clean(self):
        cleaned_data = super().clean()
        if self.errors:
            return cleaned_data

        candidate = SubmissionSite(**{
            name: value for name, value in cleaned_data.items()
            if name in {field.name for field in SubmissionSite._meta.fields}
        })
        errors = candidate.validation_errors()
        if errors:
            raise ValidationError(errors)
        return cleaned_data


@admin.register(SubmissionSite)
class SubmissionSiteAdmin(admin.ModelAdmin):
    """
    Admin interface for submission sites.

    Provides site management with fieldsets, filters, search, and actions
    to run or reschedule sites.
    """

    form = SubmissionSiteForm

    list_display = [
        "site_id",
        "name",
        "enabled_badge",
        "bing_badge",
        "interval_hours",
        "last_run_at",
        "masked_api_key",
    ]
    list_filter = ["enabled", "bing_enabled", "bing_priority"]
    search_fields = ["site_id", "name", "sitemap_url"]
    readonly_fields = ["last_run_at", "created_at", "updated_at"]
    ordering = ["site_id"]

    fieldsets = (
        ("Identity", {
            "fields": ("site_id", "name", "sitemap_url"),
        }),
        ("IndexNow", {
            "fields": ("api_key", "key_location", "search_engines"),
        }),
        ("Bing Webmaster", {
            "fields": ("bing_enabled", "bing_api_key", "bing_daily_quota", "bing_priority"),
        }),
        ("Schedule", {
            "fields": ("enabled", "interval_hours", "last_run_at"),
        }),
        ("Performance", {
            "fields": (
                "max_concurrent_requests",
                "request_interval_ms",
                "max_retries",
                "cache_ttl_days",
            ),
            "classes": ("collapse",),
        }),
        ("Metadata", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    actions = ["run_now", "enable_sites", "disable_sites", "reset_schedule"]

    def enabled_badge(self, obj):
        """Display enabled status as colored badge."""
        if obj.enabled:
            return format_html(
                '<span style="background-color: #28a745; color: white; '
                'padding: 2px 8px; border-radius: 4px;">Enabled</span>'
            )
        return format_html(
            '<span style="background-color: #6c757d; color: white; '
            'padding: 2px 8px; border-radius: 4px;">Disabled</span>'
        )
    enabled_badge.short_description = "Enabled"
    enabled_badge.admin_order_field = "enabled"

    def bing_badge(self, obj):
        """Display Bing channel state and quota."""
        if not obj.bing_enabled:
            return "-"
        return format_html(
            '<span style="background-color: #007bff; color: white; '
            'padding: 2px 8px; border-radius: 4px;">{} / day ({})</span>',
            obj.bing_daily_quota, obj.bing_priority
        )
    bing_badge.short_description = "Bing"

    def masked_api_key(self, obj):
        return mask_api_key(obj.api_key)
    masked_api_key.short_description = "API key"

    @admin.action(description="Run submission now")
    def run_now(self, request, queryset):
        """Queue an immediate run for selected enabled sites."""
        count = 0
        for site in queryset.filter(enabled=True):
            run_site_submission.apply_async(args=[site.site_id])
            count += 1
        self.message_user(
            request,
            f"Queued submission for {count} site(s). Runs will be processed shortly."
        )

    @admin.action(description="Enable selected sites")
    def enable_sites(self, request, queryset):
        count = queryset.update(enabled=True)
        self.message_user(request, f"Enabled {count} site(s).")

    @admin.action(description="Disable selected sites")
    def disable_sites(self, request, queryset):
        count = queryset.update(enabled=False)
        self.message_user(request, f"Disabled {count} site(s).")

    @admin.action(description="Reset schedule (run on next check)")
    def reset_schedule(self, request, queryset):
        """Clear last_run_at so the sites are due immediately."""
        count = queryset.update(last_run_at=None)
        self.message_user(request, f"Reset schedule for {count} site(s).")

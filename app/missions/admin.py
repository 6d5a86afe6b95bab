"""
Mission admin configuration.

Lifecycle and payment status are FSM-protected and shown read-only;
they change through MissionService and EscrowService only.
"""

from django.contrib import admin

from missions.models import Application, Mission


class ApplicationInline(admin.TabularInline):
    """Inline display of applications for a mission."""

    model = Application
    extra = 0
    fields = ["id", "student", "status", "created_at"]
    readonly_fields = ["id", "student", "status", "created_at"]
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Mission)
class MissionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "title",
        "client",
        "budget",
        "status",
        "payment_status",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "is_remote", "created_at"]
    search_fields = ["id", "title", "client__email"]
    raw_id_fields = ["client"]
    readonly_fields = ["id", "status", "payment_status", "paid_at", "created_at", "updated_at"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [ApplicationInline]


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ["id", "mission", "student", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "mission__title", "student__email"]
    raw_id_fields = ["mission", "student"]
    readonly_fields = ["id", "status", "created_at", "updated_at"]
    ordering = ["-created_at"]

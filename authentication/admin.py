from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserCreationForm, UserChangeForm
from .models import User, AccessStatus
from .services import set_user_access


class ConsoleUserCreationForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ('email', 'name', 'role')


class ConsoleUserChangeForm(UserChangeForm):
    class Meta(UserChangeForm.Meta):
        model = User
        fields = '__all__'


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    form = ConsoleUserChangeForm
    add_form = ConsoleUserCreationForm
    list_display = ['name', 'email', 'role', 'access_status', 'created_at']
    list_filter = ['role', 'access_status', 'created_at']
    search_fields = ['name', 'email']
    ordering = ['-created_at']
    readonly_fields = ['user_id', 'is_active']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('user_id', 'name')}),
        ('Permissions', {'fields': ('role', 'access_status', 'is_active', 'is_staff', 'is_superuser')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'role', 'password1', 'password2'),
        }),
    )

    actions = ['block_users', 'unblock_users']

    def block_users(self, request, queryset):
        """Block selected users"""
        for user in queryset:
            set_user_access(user.user_id, AccessStatus.BLOCKED)
        self.message_user(
            request,
            f'{queryset.count()} user(s) blocked.',
            level='WARNING'
        )
    block_users.short_description = "Block selected users"

    def unblock_users(self, request, queryset):
        """Unblock selected users"""
        for user in queryset:
            set_user_access(user.user_id, AccessStatus.ACTIVE)
        self.message_user(
            request,
            f'{queryset.count()} user(s) unblocked.',
            level='SUCCESS'
        )
    unblock_users.short_description = "Unblock selected users"

"""
Authentication models.

This module defines the user model shared by every other app:
- User: Custom user model with email-based authentication

Riders are identified by email; first and last name are kept on the user
because ride organizers are shown by name in reminders and alerts.

Related files:
    - managers.py: Custom user manager for email-based creation

Security:
    - User passwords hashed with Django's PBKDF2
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        first_name: Given name, shown to other riders
        last_name: Family name, shown to other riders
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        # Create a regular user
        user = User.objects.create_user(
            email='rider@example.com',
            password='securepassword',
            first_name='Ada',
            last_name='Lovelace',
        )

        # Create a superuser
        admin = User.objects.create_superuser(
            email='admin@example.com',
            password='adminpassword'
        )
    """

    # Primary identifier (replaces username)
    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    # Display name
    first_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's first name",
    )
    last_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's last name",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    # Configure email as the username field
    USERNAME_FIELD = "email"

    # Fields required when creating a user via createsuperuser command
    # Email is automatically required since it's the USERNAME_FIELD
    REQUIRED_FIELDS = []

    # Use custom manager for email-based user creation
    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    def get_full_name(self):
        """
        Return "First Last", or the email when no name is set.

        Returns:
            str: Display name used in notification text.
        """
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        """Return the first name, or the email local part if not set."""
        return self.first_name or self.email.split("@")[0]

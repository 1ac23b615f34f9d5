"""drf-scaffold: scaffold a Django + Django REST Framework project."""

__version__ = "0.1.0"

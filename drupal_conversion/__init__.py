"""Drupal site conversion to a Composer-managed upstream."""

__version__ = "0.1.0"

"""User-facing interfaces for mathoverlay."""

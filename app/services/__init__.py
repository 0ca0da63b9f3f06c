"""Business logic services for prop-firm compliance."""

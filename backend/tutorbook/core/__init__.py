"""Configuration, domain enums, exceptions and the injectable clock."""

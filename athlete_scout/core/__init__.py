"""Domain models, enums, errors and scoring."""

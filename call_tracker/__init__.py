"""Call run tracker: run orchestration and completion tracking service."""

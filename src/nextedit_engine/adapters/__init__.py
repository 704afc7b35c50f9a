"""Host adapters for the suggestion engine."""

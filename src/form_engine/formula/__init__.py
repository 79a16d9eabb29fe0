"""Formula parsing and derived-field evaluation."""

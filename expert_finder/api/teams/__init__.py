"""Teams bot activity handling, dialog flow and cards."""

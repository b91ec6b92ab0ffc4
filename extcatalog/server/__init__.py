"""FastAPI server for the extension catalog."""

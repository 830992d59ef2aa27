"""Task lifecycle, storage service and statistics."""

from gallery.models.media import MediaItem, MediaTag, MediaType

__all__ = ["MediaItem", "MediaTag", "MediaType"]

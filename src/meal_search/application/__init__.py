"""Application – search, trend tracking, caching and scheduled maintenance."""

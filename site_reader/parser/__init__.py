"""HTML parsing helpers for SiteReader."""

"""Fetch, mux and stream media formats resolved by yt-dlp."""

__version__ = "1.0.0"

"""TrimFlow: remove silent stretches from video files with FFmpeg."""

__version__ = "0.1.0"

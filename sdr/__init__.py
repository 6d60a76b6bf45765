"""Sound design recipes: TikTok tutorials turned into step-by-step Ableton instructions."""

__version__ = "0.1.0"

"""
Infrastructure Layer

Adapters for the outside world:
- audio/: yt-dlp subprocess runner and temporary media files
- catalog/: SoundCloud, Spotify and YouTube adapters
- discord/: discord.py voice adapter
"""

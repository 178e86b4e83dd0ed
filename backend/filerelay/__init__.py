"""
File Relay API: authenticated upload relay for Supabase Storage.
"""
__version__ = "0.1.0"

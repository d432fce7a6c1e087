"""attachsync - keeps note attachments named and placed after their notes.

When a Markdown note is renamed, every attachment it embeds or links is
renamed (and optionally moved) according to per-extension rules.
"""

__version__ = "0.3.0"

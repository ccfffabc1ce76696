"""depbot: platform layer of a dependency update bot (GitHub and Gerrit adapters)."""

__version__ = "0.1.0"

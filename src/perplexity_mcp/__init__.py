"""perplexity-mcp — Perplexity AI search and research tools over stdio."""

__version__ = "0.2.3"

"""md2confluence — publish Markdown to Confluence with rendered Mermaid diagrams."""

__version__ = "0.1.0"

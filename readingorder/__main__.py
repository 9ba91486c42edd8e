"""
Module entry point for: python -m readingorder

Allows running the analyzer directly as a module:
    python -m readingorder analyze <pdf_path> [options]
    python -m readingorder render <cache_json> [options]
    python -m readingorder info <pdf_path>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()

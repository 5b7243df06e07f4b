"""routegraph: map changed front-end source files to the routes they affect."""

__version__ = "0.3.0"

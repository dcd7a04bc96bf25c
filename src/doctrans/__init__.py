"""Translation memory for .NET IntelliSense XML documentation."""

__version__ = "0.1.0"

"""Employee Assets: SharePoint list client over Microsoft Graph."""

__version__ = "0.1.0"

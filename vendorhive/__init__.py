"""VendorHive: marketplace API connecting service vendors with customers."""

__version__ = "1.0.0"

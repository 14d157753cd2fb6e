from .option import Option, SiteMeta

__all__ = ["Option", "SiteMeta"]

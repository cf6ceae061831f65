from .config import Config, CrawlerConfig, DebugConfig, MonitoringConfig

__all__ = ["Config", "CrawlerConfig", "DebugConfig", "MonitoringConfig"]

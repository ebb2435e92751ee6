"""Configuration models."""

from t2z.config.settings import AppConfig, NodeConfig, ProtocolConfig

__all__ = ["AppConfig", "NodeConfig", "ProtocolConfig"]

from hpksessions.utils.config import CosmosSettings, create_logger

__all__ = ["CosmosSettings", "create_logger"]

"""Cosmos DB へのアクセス層（モデル、階層キー、ストア）"""

"""
Storefront CLI Commands Package

Command modules for the NFT storefront CLI.
"""

__all__ = ['collection', 'mint', 'admin', 'query']

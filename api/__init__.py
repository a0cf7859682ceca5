"""
FB Marketplace Poster API package.
"""

"""
Marketplace with timed auctions
"""

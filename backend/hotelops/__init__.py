"""
HotelOps - 酒店房态与预订引擎
"""
__version__ = "1.0.0"

"""
GoldenFace - geometric facial-proportion scoring and matching service
"""
__version__ = "1.0.0"

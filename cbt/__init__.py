"""
CBT (Computer Based Testing) バックエンド
"""

__version__ = '1.0.0'

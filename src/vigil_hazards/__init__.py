"""Vigil 预测性灾害引擎。"""

__version__ = "0.1.0"

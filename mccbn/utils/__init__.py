# This file makes the utils directory a Python package
from .basic_utils import BasicUtils
from .statistical_utils import StatisticalUtils
from .generation_utils import GenerationUtils
from .conversion_utils import ConversionUtils

__all__ = ['BasicUtils', 'StatisticalUtils', 'GenerationUtils', 'ConversionUtils']

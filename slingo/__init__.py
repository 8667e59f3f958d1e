# -*- coding: utf-8 -*-
"""Slingo — meal photo analysis and self-adjusting calorie goals."""

__version__ = "0.1.0"

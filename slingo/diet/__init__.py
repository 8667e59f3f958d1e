# -*- coding: utf-8 -*-
"""Diet domain: photo analysis, nutrition reference and the meal log."""

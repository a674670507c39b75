"""
Rendering and hit-testing of visible annotations.
"""
from .hit_test import annotation_contains, distance_to_segment, topmost_hit
from .renderer import STAMP_STYLES, RenderEngine, Renderer

__all__ = [
    'STAMP_STYLES',
    'RenderEngine',
    'Renderer',
    'annotation_contains',
    'distance_to_segment',
    'topmost_hit',
]

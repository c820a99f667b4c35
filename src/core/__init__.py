"""
Mesh Architect Core Module

Planning engine shared by the CLI, web API and exporters:
- Data models and propagation lookup tables
- Link estimation (FSPL margin model)
- Robustness analysis (single points of failure, critical links)
- Summary and recommendation texts
- MeshSession, the state owner that ties them together
"""

from .models import Environment, Link, LinkOverride, LinkQuality, Node, RobustnessResult
from .link_estimator import estimate_links
from .robustness import analyze
from .summary import MeshSummary, summarize
from .session import MeshSession

__all__ = [
    'Environment',
    'Link',
    'LinkOverride',
    'LinkQuality',
    'Node',
    'RobustnessResult',
    'estimate_links',
    'analyze',
    'MeshSummary',
    'summarize',
    'MeshSession',
]

"""Package root.

Client layer over the Facebook Marketing API for custom audiences and
lookalike audiences. Public operations live in `fbads.services`; the
`fbads` console script in `fbads.cli` wraps them.
"""

__all__ = [
]

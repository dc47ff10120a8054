from .mirror_handler import MirrorListHandler

__all__ = [
	'MirrorListHandler',
]

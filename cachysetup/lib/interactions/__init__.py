from .prompt import PromptGate

__all__ = [
	'PromptGate',
]

from pydantic import BaseModel, ConfigDict, field_validator


class PackageSet(BaseModel):
	"""
	A named, ordered set of package names.
	The order is kept so installs are reproducible.
	"""

	model_config = ConfigDict(frozen=True)

	name: str
	packages: tuple[str, ...]

	@field_validator('packages', mode='before')
	@classmethod
	def _strip_names(cls, value: list[str] | tuple[str, ...]) -> tuple[str, ...]:
		return tuple(str(pkg).strip() for pkg in value)

	@field_validator('packages')
	@classmethod
	def _unique_names(cls, value: tuple[str, ...]) -> tuple[str, ...]:
		seen: set[str] = set()
		duplicates = []

		for pkg in value:
			if not pkg:
				raise ValueError('Empty package name')
			if pkg in seen:
				duplicates.append(pkg)
			seen.add(pkg)

		if duplicates:
			raise ValueError(f'Duplicate packages: {", ".join(duplicates)}')

		return value

	def __contains__(self, package: object) -> bool:
		return package in self.packages

	def __len__(self) -> int:
		return len(self.packages)

"""
Load and merge YAML configuration files into a mutable Configuration object
with nested dict-like and attribute-like access to the parameters.

Notes
-----
    Top-level keys must be unique across files; a duplicate raises ValueError
    naming the file that first defined the key.

Examples
--------
    >>> config = load_yaml(["photoreceptor_parameters.yaml", "simulation_parameters.yaml"])
    >>> config.photoreceptor_parameters.sigma
    >>> config.simulation_parameters["dt_seconds"] = 0.001
    >>> config.as_dict()
"""

# Built-in
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

# Third-party
from yaml import YAMLError, safe_load


class _YamlLoader:
    """
    Loads one or multiple YAML files into a single dictionary.
    """

    def __init__(self, yaml_paths: Iterable[Path | str]) -> None:
        self.yaml_paths: list[Path] = [Path(p) for p in yaml_paths]
        self._key_sources: dict[str, Path] = {}

    def load_config(self) -> dict[str, Any]:
        """
        Read and merge all YAML files.

        Returns
        -------
        combined_config: dict[str, Any]
            Top-level parameters of all files.

        Raises
        -------
        FileNotFoundError
            If a YAML file is missing
        ValueError
            If a YAML file is empty, invalid, not a mapping at the top level,
            or repeats a top-level key of a previous file
        RuntimeError
            For other errors during loading
        """

        combined_config: dict[str, Any] = {}
        for path in self.yaml_paths:
            if not path.exists():
                raise FileNotFoundError(f"YAML file not found: {path!s}")

            with open(path, "r", encoding="utf-8") as file:
                try:
                    yaml_contents = safe_load(file)
                    if yaml_contents is None:
                        raise ValueError(f"Configuration file is empty: {path!s}")
                    if not isinstance(yaml_contents, dict):
                        raise ValueError(
                            f"Top-level of YAML must be a mapping in {path!s}"
                        )
                    self._merge_configs(combined_config, yaml_contents, path)
                except YAMLError as e:
                    raise ValueError(
                        f"Invalid YAML in configuration file {path}: {e}"
                    ) from e
                except Exception as e:
                    if isinstance(e, ValueError):
                        raise
                    raise RuntimeError(
                        f"Failed to load configuration from {path}: {e}"
                    ) from e
        return combined_config

    def _merge_configs(
        self,
        combined_config: dict[str, Any],
        current_config: dict[str, Any],
        path: Path,
    ) -> None:
        for key in current_config:
            if key in combined_config:
                prev_path = self._key_sources.get(key, "<unknown>")
                raise ValueError(
                    f"Duplicate top-level key '{key}' found in {path!s}; "
                    f"first defined in {prev_path!s}."
                )
            self._key_sources[key] = path

        combined_config.update(current_config)


class Configuration(MutableMapping):
    """
    Configuration object.

    Nested dictionaries become Configuration objects. Keys starting with "_"
    are reserved and cannot be set as attributes.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        super().__setattr__("_data", {})
        if initial:
            self.update(initial)

    def _wrap(self, value: Any) -> Any:
        return type(self)(value) if isinstance(value, dict) else value

    # MutableMapping core methods
    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = self._wrap(value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict representation of the configuration."""
        return {
            k: v.to_dict() if isinstance(v, Configuration) else v
            for k, v in self._data.items()
        }

    def as_dict(self) -> dict[str, Any]:
        """Alias for to_dict()."""
        return self.to_dict()

    # Attribute-like access and assignment
    def __getattr__(self, name: str) -> Any:
        """Supports attribute-like access (config.param)"""
        data = self.__dict__.get("_data", {})
        if name in data:
            return data[name]
        raise AttributeError(f"No attribute '{name}' found.")

    def __setattr__(self, name: str, value: Any) -> None:
        """Supports attribute-like assignment (config.param = my_value)"""
        if name.startswith("_") or hasattr(type(self), name):
            raise AttributeError(
                f"Cannot set attribute '{name}' because it conflicts with a built-in member."
            )
        self[name] = value

    def __dir__(self) -> list[str]:
        return list(super().__dir__()) + list(self._data.keys())

    def __repr__(self):
        return f"{type(self).__name__}({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Configuration):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return False

    __hash__ = None

    @classmethod
    def from_yaml(cls, *paths: Path | str) -> "Configuration":
        """Get parameters from the YAML files. Delegates to _YamlLoader."""
        return cls(_YamlLoader(paths).load_config())


# Façade
def load_yaml(paths: Iterable[Path | str] | Path | str) -> Configuration:
    """
    Load project configuration from one or more YAML files.

    Parameters
    ----------
    paths: Iterable[Path | str] | Path | str
        Paths (or a single path) of YAML configuration files to load and merge.

    Returns
    -------
    Configuration
        Read/write access to the parameters set in the YAML files.

    Raises
    ------
    FileNotFoundError
        If any of the paths does not exist
    """

    if isinstance(paths, (str, Path)):
        paths_list = [paths]
    else:
        paths_list = list(paths)

    return Configuration.from_yaml(*paths_list)

from typing import TypeVar

Binding = TypeVar("Binding", bound="agents.ContractBinding")  # noqa: F821

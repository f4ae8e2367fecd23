from dataclasses import dataclass


@dataclass(frozen=True)
class HostInstance:
    """
    Value Object for the identity the host framework gives each test instance.
    """
    name: str
    platform_name: str
    bourne_shell: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("HostInstance name cannot be empty")
        if not self.platform_name:
            raise ValueError("HostInstance platform_name cannot be empty")

    def __str__(self) -> str:
        return f"{self.name} ({self.platform_name})"

# src/trine/config/models.py

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ArtifactKind(BaseModel):
    """One kind of key material replicated between nodes.

    The file for identity ``n`` lives at ``f"{base_path}{n}{extension}"``.
    """
    name: str
    base_path: str
    extension: str

    def path_for(self, identity: int) -> str:
        return f"{self.base_path}{identity}{self.extension}"


def default_artifact_kinds() -> List[ArtifactKind]:
    return [
        ArtifactKind(name="tls-cert", base_path="/etc/ipa/pub/h", extension=".pem"),
        ArtifactKind(name="match-key", base_path="/etc/ipa/pub/h", extension="_mk.pub"),
    ]


class BootstrapConfig(BaseModel):
    # image naming, must match the tag the builder produces
    namespace: str = "private-attribution"
    project: str = "ipa"
    revision_length: int = 10

    # topology
    size: int = 3
    default_hostname: str = "localhost"
    base_port: int = 1443

    # external collaborators
    docker_binary: str = "docker"
    builder_command: List[str] = Field(default_factory=lambda: ["./helper-image.sh"])
    confgen_binary: str = "/usr/local/bin/ipa-helper"
    keys_dir: str = "/etc/ipa/pub"
    confgen_ports: List[int] = Field(default_factory=lambda: [443, 443, 443])
    artifact_kinds: List[ArtifactKind] = Field(default_factory=default_artifact_kinds)

    # outputs and transient containers
    archive_prefix: str = "ipa"
    transient_prefix: str = "trine-transient"
    legacy_container_name: Optional[str] = "copy_container"
    command_timeout_seconds: Optional[int] = None

    @field_validator("size")
    @classmethod
    def _size_at_least_two(cls, v: int) -> int:
        if v < 2:
            raise ValueError("size must be at least 2 to exchange credentials")
        return v

    @field_validator("builder_command")
    @classmethod
    def _builder_not_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("builder_command must not be empty")
        return v

    @model_validator(mode="after")
    def _one_confgen_port_per_node(self) -> "BootstrapConfig":
        if len(self.confgen_ports) != self.size:
            raise ValueError(
                f"confgen_ports has {len(self.confgen_ports)} entries, expected {self.size}"
            )
        return self

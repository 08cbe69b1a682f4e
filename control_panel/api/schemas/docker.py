from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from control_panel.runtime.docker_runtime import ContainerSpec


class ContainerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    ports: Dict[str, Optional[int]] = Field(default_factory=dict, description="{'80/tcp': 8080}")
    env: List[str] = Field(default_factory=list, description="['KEY=value']")
    binds: List[str] = Field(default_factory=list, description="['/host:/container']")
    memory: Optional[int] = Field(default=None, ge=6, description="MB")
    cpu: Optional[float] = Field(default=None, gt=0, description="vCPU")
    restart_policy: str = "unless-stopped"
    start: bool = True

    def to_spec(self) -> ContainerSpec:
        return ContainerSpec(
            name=self.name,
            image=self.image,
            ports=self.ports,
            binds=self.binds,
            env=self.env,
            mem_limit=self.memory * 1024 * 1024 if self.memory else None,
            nano_cpus=int(self.cpu * 1_000_000_000) if self.cpu else None,
            restart_policy=self.restart_policy,
        )


class ExecRequest(BaseModel):
    command: List[str] = Field(..., min_length=1)


class ImagePullRequest(BaseModel):
    image: str = Field(..., min_length=1)


class NetworkCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    driver: str = "bridge"


class VolumeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    driver: str = "local"

from .base import ContainerMissing, ContainerRuntime, ContainerSpec, ImageMissing, WaitTimeout

__all__ = ["ContainerMissing", "ContainerRuntime", "ContainerSpec", "ImageMissing", "WaitTimeout"]

from .rgbd_frame import RGBDFrame

__all__ = ["RGBDFrame"]

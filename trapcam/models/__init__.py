# TrapCam database models
# Import all models here for SQLAlchemy discovery

from trapcam.models.location import Location              # noqa
from trapcam.models.camera import Camera, device_cameras  # noqa
from trapcam.models.email_archive import EmailArchive     # noqa
from trapcam.models.animal import Animal                  # noqa
from trapcam.models.image import Image, image_animals     # noqa
from trapcam.models.device import Device                  # noqa

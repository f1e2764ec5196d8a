from .manage_channels import ChannelAdminError, ManageChannelsUseCase
from .record_played import RecordPlayedUseCase
from .select_next import SelectNextUseCase

__all__ = [
    "ChannelAdminError",
    "ManageChannelsUseCase",
    "RecordPlayedUseCase",
    "SelectNextUseCase",
]

"""Guided dialogs offered by the bot, one class per entry command."""

from .admin_profiles import AdminProfilesWizard
from .common import Services
from .event_edit import EventEditWizard
from .event_setup import EventSetupWizard
from .event_start import EventStartWizard
from .events import EventsWizard
from .profile import ProfileWizard
from .publishing import ProfilePublisher
from .show_topics import ShowTopicsWizard
from .start import HelpWizard, StartWizard
from .topic_add import TopicAddWizard
from .topics import TopicsWizard

WIZARD_CLASSES = (
    StartWizard,
    HelpWizard,
    ProfileWizard,
    EventsWizard,
    TopicsWizard,
    TopicAddWizard,
    EventSetupWizard,
    EventEditWizard,
    EventStartWizard,
    ShowTopicsWizard,
    AdminProfilesWizard,
)

__all__ = [
    "WIZARD_CLASSES",
    "AdminProfilesWizard",
    "EventEditWizard",
    "EventSetupWizard",
    "EventStartWizard",
    "EventsWizard",
    "HelpWizard",
    "ProfilePublisher",
    "ProfileWizard",
    "Services",
    "ShowTopicsWizard",
    "StartWizard",
    "TopicAddWizard",
    "TopicsWizard",
]

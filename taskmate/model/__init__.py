from .user import User
from .identity import Identity
from .integration import Integration
from .composio_connection import ComposioConnection
from .category import Category
from .task import Task
from .email_summary import EmailSummary
from .assignment_metadata import AssignmentMetadata

# Importing every model here registers all tables on Base.metadata before
# create_all() runs and lets relationship() resolve names across modules.

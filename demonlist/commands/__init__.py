"""Commands executed by the worker pool."""

from demonlist.commands.abstract import Command, Handler
from demonlist.commands.lookup import (
    DeleteRecordById,
    DeleteUserById,
    DemonByName,
    PlayerByName,
    RecordById,
    ResolveSubmissionData,
    SubmitterByIp,
    UserById,
    UserByName,
)
from demonlist.commands.patch import Patch, PatchCurrentUser
from demonlist.commands.auth import (
    Authorization,
    BasicAuth,
    BasicCredentials,
    Invalidate,
    IssueToken,
    Register,
    TokenAuth,
    TokenCredentials,
)
from demonlist.commands.submission import ProcessSubmission
from demonlist.commands.pagination import Paginate

__all__ = [
    "Command",
    "Handler",
    "SubmitterByIp",
    "PlayerByName",
    "DemonByName",
    "ResolveSubmissionData",
    "RecordById",
    "DeleteRecordById",
    "UserById",
    "UserByName",
    "DeleteUserById",
    "Patch",
    "PatchCurrentUser",
    "BasicCredentials",
    "TokenCredentials",
    "Authorization",
    "Register",
    "BasicAuth",
    "TokenAuth",
    "IssueToken",
    "Invalidate",
    "ProcessSubmission",
    "Paginate",
]

"""Services for registry business logic."""

from .exceptions import (
    RegistryServiceError,
    PlotNotFoundError,
    DuplicatePlotError,
    PersonNotFoundError,
    OwnershipNotFoundError,
    InvalidMergeError,
    InviteCodeError,
    InviteCodeNotFoundError,
    InviteCodeUsedError,
    RegistryImportError,
)
from .plot_management import (
    create_plot,
    update_plot,
    attach_owner,
    detach_owner,
    search_registry,
    split_plot_query,
)
from .person_deduplication import (
    normalize_phone,
    find_potential_duplicates,
    detect_issues,
)
from .person_merging import merge_persons
from .invite_codes import (
    generate_code,
    create_invite_code,
    validate_invite_code,
    redeem_invite_code,
    regenerate_invite_code,
    list_invite_codes,
)
from .registry_import import import_registry_csv

__all__ = [
    # Exceptions
    'RegistryServiceError',
    'PlotNotFoundError',
    'DuplicatePlotError',
    'PersonNotFoundError',
    'OwnershipNotFoundError',
    'InvalidMergeError',
    'InviteCodeError',
    'InviteCodeNotFoundError',
    'InviteCodeUsedError',
    'RegistryImportError',
    # Plots
    'create_plot',
    'update_plot',
    'attach_owner',
    'detach_owner',
    'search_registry',
    'split_plot_query',
    # Data quality
    'normalize_phone',
    'find_potential_duplicates',
    'detect_issues',
    'merge_persons',
    # Invite codes
    'generate_code',
    'create_invite_code',
    'validate_invite_code',
    'redeem_invite_code',
    'regenerate_invite_code',
    'list_invite_codes',
    # Import
    'import_registry_csv',
]

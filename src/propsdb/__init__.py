"""propsdb: validity-resolved property database for time-versioned metadata."""

__version__ = "0.1.0"

from propsdb.cache import ResolutionCache, resolve_path
from propsdb.config import PropsDBConfig
from propsdb.db import Leaf, Missing, MissingRef, NodeResult, PropsDB, SubTree, bind
from propsdb.errors import (
    AmbiguousSelectorError,
    NoValidityError,
    NotAPropsDBError,
    PropsDBError,
    SelectionBoundError,
    SelectionRequiredError,
    SelectionTooEarlyError,
    ValidationError,
    ValidityFileNotFoundError,
)
from propsdb.layout import DataConfig, SetupPaths, tier_file_path
from propsdb.merge import merge_validity
from propsdb.props import PropDict, deep_merge, read_props, write_props
from propsdb.selectors import (
    ChannelId,
    DataCategory,
    DataPartition,
    DataPeriod,
    DataRun,
    DataSelector,
    DataTier,
    DetectorId,
    ExpSetup,
    FileKey,
    Timestamp,
    parse_selector,
    read_filekeys,
    write_filekeys,
)
from propsdb.validity import (
    ValidityDict,
    ValidityEntry,
    ValidityMode,
    ValiditySelection,
    ValiditySnapshot,
    append_validity_entry,
    read_validity,
    replay_validity,
    resolve_filelist,
    resolve_snapshot,
)

__all__ = [
    "__version__",
    "ExpSetup",
    "DataTier",
    "DataCategory",
    "DataPeriod",
    "DataRun",
    "DataPartition",
    "ChannelId",
    "DetectorId",
    "Timestamp",
    "FileKey",
    "DataSelector",
    "parse_selector",
    "read_filekeys",
    "write_filekeys",
    "ValidityMode",
    "ValiditySelection",
    "ValidityEntry",
    "ValiditySnapshot",
    "ValidityDict",
    "read_validity",
    "replay_validity",
    "resolve_filelist",
    "resolve_snapshot",
    "append_validity_entry",
    "merge_validity",
    "PropDict",
    "read_props",
    "write_props",
    "deep_merge",
    "PropsDB",
    "SubTree",
    "Leaf",
    "Missing",
    "MissingRef",
    "NodeResult",
    "bind",
    "ResolutionCache",
    "resolve_path",
    "SetupPaths",
    "DataConfig",
    "tier_file_path",
    "PropsDBConfig",
    "PropsDBError",
    "ValidationError",
    "AmbiguousSelectorError",
    "NoValidityError",
    "SelectionTooEarlyError",
    "SelectionRequiredError",
    "SelectionBoundError",
    "NotAPropsDBError",
    "ValidityFileNotFoundError",
]

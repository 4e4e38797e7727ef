from .action import CHAIN, Action, compose_actions, define_action
from .args_binder import bind_curator_args, bind_source_args
from .core import (
    AbortSignal,
    Aborted,
    CollectParams,
    ContractViolation,
    CurateParams,
    Decoration,
    InvokeParams,
    Item,
    MatchParams,
    MissingContextError,
    PreviewItem,
    PreviewParams,
    ProjectParams,
    RefineParams,
    RenderParams,
    SortParams,
    TraceEvent,
    check,
)
from .curator import Curator, compose_curators, define_curator
from .host import BufferInfo, Host, LocalHost
from .matcher import Matcher, compose_matchers, define_matcher
from .ops_action import cd, cmd, echo, noop_action, open_action, per_item, submatch, yank
from .ops_curator import git_grep, grep, noop_curator, rg
from .ops_matcher import fuzzy, noop_matcher, regexp, substring
from .ops_previewer import buffer_previewer, file_previewer, noop_previewer, shell_previewer
from .ops_refiner import (
    absolute_path_refiner,
    cwd,
    exists,
    file_info,
    noop_refiner,
    regexp_refiner,
    relative_path_refiner,
)
from .ops_renderer import absolute_path, noop_renderer, relative_path, smart_path
from .ops_sorter import lexical, noop_sorter, numerical
from .ops_source import buffer_source, file_source, line_source, list_source, noop_source
from .pipeline import Evaluation, Pipeline, SubmatchContext
from .previewer import Previewer, compose_previewers, define_previewer
from .projector import Projector, compose_projectors, define_projector, pipe_projectors
from .refiner import (
    Refiner,
    compose_refiners,
    define_refiner,
    refine_curator,
    refine_source,
    validate_chain,
)
from .renderer import Renderer, compose_renderers, define_renderer
from .sorter import Sorter, compose_sorters, define_sorter
from .source import Source, compose_sources, define_source

__version__ = "0.1.0"

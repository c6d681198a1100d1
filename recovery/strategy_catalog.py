"""
Recovery Strategy Catalog

Registry of recovery strategies and the selection step that ranks the
strategies applicable to a raised error.
"""

import logging
from typing import Dict, List, Optional, Callable, Awaitable
from collections import OrderedDict
from functools import partial

from .config import RecoveryConfig
from .recovery_state import (
    ActionType,
    RecoverableErrorKind,
    RecoveryAction,
    RecoveryStrategy
)


ActionHandler = Callable[[], Awaitable[bool]]


class StrategyCatalog:
    """
    Table of recovery strategies with a bounded selection cache.

    Built-in strategies ship with actions that delegate to handlers bound by
    the host application through bind_action(). An action with no bound
    handler reports failure.
    """

    def __init__(
        self,
        config_provider: Callable[[], RecoveryConfig],
        include_builtins: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        self._config_provider = config_provider
        self.logger = logger or logging.getLogger('recovery_strategy_catalog')

        self._strategies: Dict[str, RecoveryStrategy] = {}
        self._action_handlers: Dict[str, ActionHandler] = {}
        self._cache: "OrderedDict[str, List[RecoveryStrategy]]" = OrderedDict()

        if include_builtins:
            for strategy in self._initialize_builtin_strategies():
                self._strategies[strategy.id] = strategy

    @property
    def config(self) -> RecoveryConfig:
        return self._config_provider()

    def register_strategy(self, strategy: RecoveryStrategy):
        """Add or replace a strategy; invalidates cached selections"""
        replaced = strategy.id in self._strategies
        self._strategies[strategy.id] = strategy
        self._cache.clear()
        self.logger.info(f"{'Replaced' if replaced else 'Registered'} recovery strategy {strategy.id}")

    def bind_action(self, action_id: str, handler: ActionHandler):
        """Bind the operation run by a built-in action"""
        self._action_handlers[action_id] = handler
        self.logger.info(f"Bound handler for recovery action {action_id}")

    def get_strategy(self, strategy_id: str) -> Optional[RecoveryStrategy]:
        return self._strategies.get(strategy_id)

    def list_strategies(self) -> List[RecoveryStrategy]:
        return list(self._strategies.values())

    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self):
        self._cache.clear()

    def select_strategies(
        self,
        error: BaseException,
        kind: Optional[RecoverableErrorKind] = None
    ) -> List[RecoveryStrategy]:
        """
        Rank the strategies applicable to an error.

        Callers that know the error's kind pass it and get the strategies
        tagged with that kind. Otherwise the condition keywords of each
        strategy are matched against the lower-cased error message and
        class name.

        Args:
            error: The raised error
            kind: Tagged classification, if known

        Returns:
            Strategies ordered by ascending priority, then descending
            success rate. Empty when nothing applies.
        """
        config = self.config
        error_type = type(error).__name__
        message = str(error).lower()
        tagged = kind is not None and kind != RecoverableErrorKind.UNKNOWN

        cache_key = f"{error_type}:{message[:50]}"
        if tagged:
            cache_key = f"{kind.value}|{cache_key}"

        if config.enable_recovery_cache and cache_key in self._cache:
            return list(self._cache[cache_key])

        if tagged:
            applicable = [s for s in self._strategies.values() if kind in s.kinds]
        else:
            type_name = error_type.lower()
            applicable = [
                s for s in self._strategies.values()
                if any(condition in message or condition in type_name for condition in s.conditions)
            ]

        ranked = sorted(applicable, key=lambda s: (s.priority, -s.success_rate))

        if config.enable_recovery_cache and ranked:
            while len(self._cache) >= config.recovery_cache_size:
                self._cache.popitem(last=False)
            self._cache[cache_key] = ranked

        self.logger.debug(f"Selected {[s.id for s in ranked]} for {error_type}")
        return list(ranked)

    async def _run_bound_action(self, action_id: str) -> bool:
        handler = self._action_handlers.get(action_id)
        if handler is None:
            self.logger.warning(f"No handler bound for recovery action {action_id}")
            return False
        return await handler()

    def _builtin_action(
        self,
        action_id: str,
        action_type: ActionType,
        description: str,
        timeout: float,
        retryable: bool = True,
        side_effects: tuple = ()
    ) -> RecoveryAction:
        return RecoveryAction(
            id=action_id,
            type=action_type,
            description=description,
            execute=partial(self._run_bound_action, action_id),
            timeout=timeout,
            retryable=retryable,
            side_effects=side_effects
        )

    def _initialize_builtin_strategies(self) -> List[RecoveryStrategy]:
        """Initialize built-in strategies and the fallbacks they reference"""
        action = self._builtin_action

        return [
            RecoveryStrategy(
                id='network-retry',
                name='Network Retry',
                description='Retry network operations with exponential backoff',
                priority=1,
                conditions=frozenset({'network', 'timeout', 'connection'}),
                kinds=frozenset({RecoverableErrorKind.NETWORK}),
                actions=(
                    action('retry-request', ActionType.RETRY, 'Retry the failed network request',
                           5000, side_effects=('network-traffic',)),
                ),
                fallback_strategies=('offline-mode', 'cached-data'),
                success_rate=0.7,
                average_recovery_time=2000
            ),
            RecoveryStrategy(
                id='component-refresh',
                name='Component Refresh',
                description='Refresh the affected component',
                priority=2,
                conditions=frozenset({'runtime', 'render', 'state'}),
                kinds=frozenset({RecoverableErrorKind.RUNTIME}),
                actions=(
                    action('refresh-component', ActionType.REFRESH, 'Force the component to refresh',
                           2000, side_effects=('ui-update',)),
                ),
                fallback_strategies=('component-rebuild', 'fallback-ui'),
                success_rate=0.8,
                average_recovery_time=1000
            ),
            RecoveryStrategy(
                id='cache-clear',
                name='Cache Clear',
                description='Clear application cache and retry',
                priority=3,
                conditions=frozenset({'cache', 'storage', 'data'}),
                kinds=frozenset({RecoverableErrorKind.CACHE}),
                actions=(
                    action('clear-cache', ActionType.CLEAR, 'Clear application cache',
                           1000, retryable=False, side_effects=('data-loss', 're-fetch')),
                ),
                fallback_strategies=('hard-reset', 'rebuild-cache'),
                success_rate=0.9,
                average_recovery_time=500
            ),
            RecoveryStrategy(
                id='session-reconnect',
                name='Session Reconnect',
                description='Reconnect user session',
                priority=1,
                conditions=frozenset({'session', 'auth', 'token'}),
                kinds=frozenset({RecoverableErrorKind.SESSION}),
                actions=(
                    action('reconnect-session', ActionType.RECONNECT, 'Reconnect user session',
                           10000, side_effects=('session-refresh', 'token-refresh')),
                ),
                fallback_strategies=('force-login', 'guest-mode'),
                success_rate=0.6,
                average_recovery_time=3000
            ),

            # Fallback-only strategies: no conditions, reached by id
            RecoveryStrategy(
                id='offline-mode',
                name='Offline Mode',
                description='Switch to offline operation',
                priority=4,
                actions=(
                    action('enable-offline-mode', ActionType.FALLBACK, 'Enable offline mode', 2000),
                ),
                success_rate=0.5,
                average_recovery_time=1000
            ),
            RecoveryStrategy(
                id='cached-data',
                name='Cached Data',
                description='Serve previously cached data',
                priority=4,
                actions=(
                    action('serve-cached-data', ActionType.FALLBACK, 'Serve cached data', 1000),
                ),
                success_rate=0.6,
                average_recovery_time=500
            ),
            RecoveryStrategy(
                id='component-rebuild',
                name='Component Rebuild',
                description='Rebuild the affected component from scratch',
                priority=4,
                actions=(
                    action('rebuild-component', ActionType.REBUILD, 'Rebuild component', 3000,
                           side_effects=('ui-update', 'state-loss')),
                ),
                success_rate=0.7,
                average_recovery_time=1500
            ),
            RecoveryStrategy(
                id='fallback-ui',
                name='Fallback UI',
                description='Render a reduced fallback interface',
                priority=5,
                actions=(
                    action('render-fallback-ui', ActionType.FALLBACK, 'Render fallback UI', 1000,
                           side_effects=('ui-update',)),
                ),
                success_rate=0.9,
                average_recovery_time=300
            ),
            RecoveryStrategy(
                id='hard-reset',
                name='Hard Reset',
                description='Reset application state',
                priority=4,
                actions=(
                    action('hard-reset-state', ActionType.RESET, 'Reset application state', 3000,
                           retryable=False, side_effects=('data-loss',)),
                ),
                success_rate=0.8,
                average_recovery_time=2000
            ),
            RecoveryStrategy(
                id='rebuild-cache',
                name='Rebuild Cache',
                description='Rebuild the application cache',
                priority=4,
                actions=(
                    action('rebuild-cache', ActionType.REBUILD, 'Rebuild cache', 5000,
                           side_effects=('re-fetch',)),
                ),
                success_rate=0.7,
                average_recovery_time=2500
            ),
            RecoveryStrategy(
                id='force-login',
                name='Force Login',
                description='Require the user to sign in again',
                priority=4,
                actions=(
                    action('force-login', ActionType.RESET, 'Force re-authentication', 30000,
                           retryable=False, side_effects=('session-loss',)),
                ),
                success_rate=0.9,
                average_recovery_time=10000
            ),
            RecoveryStrategy(
                id='guest-mode',
                name='Guest Mode',
                description='Continue with a guest session',
                priority=5,
                actions=(
                    action('enter-guest-mode', ActionType.FALLBACK, 'Enter guest mode', 2000,
                           side_effects=('reduced-permissions',)),
                ),
                success_rate=0.8,
                average_recovery_time=500
            )
        ]

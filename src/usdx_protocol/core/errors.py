"""
Errors — Таксономия ошибок протокола

Все отказы ledger-операций выражаются исключениями из этого модуля.
Каждое исключение несёт стабильный машиночитаемый `reason`, который relayer
использует для классификации (retry / already applied / fatal).

Иерархия:
- ValidationError          — невалидный ввод (amount <= 0, неизвестная сеть)
- AuthorizationError       — у вызывающего нет нужной роли
- StateConflictError       — повторный idempotency key, reentrancy
- InsufficientBalanceError — overdraft, over-mint против attested snapshot
- ExternalDependencyError  — сбой RPC/сети на стороне relayer

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. StateConflictError по mintId/transferId никогда не ретраится под тем же ключом
2. Любая ledger-мутация, завершившаяся исключением, не оставляет следов в state
"""

from typing import Optional


class ProtocolError(Exception):
    """Базовое исключение протокола."""

    reason: str = "protocol_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


class ValidationError(ProtocolError):
    """Невалидные входные параметры."""

    reason = "invalid_input"


class UnsupportedChain(ValidationError):
    """Сеть назначения/источника не зарегистрирована в bridge."""

    reason = "UnsupportedChain"


# =============================================================================
# АВТОРИЗАЦИЯ
# =============================================================================


class AuthorizationError(ProtocolError):
    """Вызывающий не имеет роли, разрешающей операцию."""

    reason = "Unauthorized"


class Unauthorized(AuthorizationError):
    pass


# =============================================================================
# КОНФЛИКТЫ СОСТОЯНИЯ
# =============================================================================


class StateConflictError(ProtocolError):
    """Операция конфликтует с уже зафиксированным состоянием."""

    reason = "state_conflict"


class DuplicateMint(StateConflictError):
    """mintId уже использован — повторная доставка, эффект не применяется."""

    reason = "DuplicateMint"


class DuplicateCompletion(StateConflictError):
    """transferId уже в статусе Completed."""

    reason = "DuplicateCompletion"


class DuplicateKey(StateConflictError):
    """Попытка повторной записи в write-once хранилище."""

    reason = "DuplicateKey"


class ReentrancyError(StateConflictError):
    """Вложенный вызов в открытую транзакцию домена."""

    reason = "Reentrancy"


# =============================================================================
# БАЛАНСЫ
# =============================================================================


class InsufficientBalanceError(ProtocolError):
    """Недостаточно средств для операции."""

    reason = "InsufficientBalance"


class InsufficientCollateral(InsufficientBalanceError):
    """withdraw превышает collateral пользователя."""

    reason = "InsufficientCollateral"


class InsufficientHubPosition(InsufficientBalanceError):
    """mintedTotal + amount превышает attested hub position."""

    reason = "InsufficientHubPosition"


# =============================================================================
# ВНЕШНИЕ ЗАВИСИМОСТИ
# =============================================================================


class ExternalDependencyError(ProtocolError):
    """Сбой RPC/сети. Безопасно ретраится благодаря idempotency keys."""

    reason = "rpc_unavailable"

"""재시도 지연 계산과 비동기 재조회 헬퍼"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from infra.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def calculate_retry_delay(
    attempt: int, base_delay: float = 0.5, max_delay: float = 60.0, exponential: bool = False
) -> float:
    """
    재시도 지연 시간 계산

    Args:
        attempt: 1부터 시작하는 재시도 번호
        base_delay: 기본 지연(초)
        max_delay: 최대 지연(초)
        exponential: True면 base * 2^(attempt-1), False면 base * attempt

    Example:
        >>> [calculate_retry_delay(n) for n in (1, 2, 3)]
        [0.5, 1.0, 1.5]
    """
    if exponential:
        delay = base_delay * (2 ** (attempt - 1))
    else:
        delay = base_delay * attempt
    return min(delay, max_delay)


def linear_backoff(base_delay: float) -> Callable[[int], float]:
    """n번째 재시도 전 base_delay * n 초를 기다리는 백오프 함수"""
    return lambda attempt: calculate_retry_delay(attempt, base_delay)


@dataclass
class RetryResult(Generic[T]):
    """재조회 결과 (예외 대신 값으로 실패를 전달)"""

    value: Optional[T]
    attempts: int

    @property
    def found(self) -> bool:
        return self.value is not None


async def retry_until_found(
    fetch: Callable[[], Awaitable[Optional[T]]],
    max_retries: int = 3,
    backoff: Optional[Callable[[int], float]] = None,
    description: str = "resource",
) -> RetryResult[T]:
    """
    fetch 가 None 이 아닌 값을 돌려줄 때까지 재조회

    첫 조회 후 최대 max_retries 번 더 시도하며, n번째 재시도 전에 backoff(n) 초 대기합니다.

    Args:
        fetch: 값을 조회하는 코루틴 함수 (없으면 None 반환)
        max_retries: 추가 재조회 최대 횟수
        backoff: 재시도 번호 -> 대기 시간(초), 기본은 0.5초 선형 증가
        description: 로그용 이름

    Returns:
        RetryResult: 찾은 값(없으면 None)과 총 조회 횟수
    """
    backoff = backoff or linear_backoff(0.5)

    value = await fetch()
    attempts = 1

    while value is None and attempts <= max_retries:
        delay = backoff(attempts)
        logger.debug(f"{description} 없음, {delay:.1f}초 후 재조회 ({attempts}/{max_retries})")
        if delay > 0:
            await asyncio.sleep(delay)
        value = await fetch()
        attempts += 1

    return RetryResult(value=value, attempts=attempts)

import functools
import time
from enum import Enum
from typing import Any, Callable, Optional, Union

from requests import HTTPError, Timeout
from web3 import Web3
from web3.types import RPCEndpoint, RPCResponse

from abirpc.blockchain.eth.chains import RetryClientConfig
from abirpc.utilities.logging import Logger


class RetryReason(Enum):
    RATE_LIMITED = "rate-limited"
    TIMED_OUT = "timed-out"


class RetryRequestMiddleware:
    """
    Automatically retries rpc requests that were rate limited (429 status code)
    or that timed out, each kind with its own retry budget.
    """

    def __init__(self,
                 make_request: Callable[[RPCEndpoint, Any], RPCResponse],
                 w3: Web3,
                 rate_limit_retries: int = 10,
                 timeout_retries: int = 3,
                 initial_backoff: float = 1.0,
                 exponential_backoff: bool = True):
        self.w3 = w3
        self.make_request = make_request
        self.rate_limit_retries = rate_limit_retries
        self.timeout_retries = timeout_retries
        self.initial_backoff = initial_backoff
        self.exponential_backoff = exponential_backoff
        self.logger = Logger(self.__class__.__name__)

    @classmethod
    def configure(cls, config: RetryClientConfig, exponential_backoff: bool = True) -> Callable:
        """Returns a web3 middleware constructor bound to the given retry configuration."""
        return functools.partial(cls,
                                 rate_limit_retries=config.rate_limit_retries,
                                 timeout_retries=config.timeout_retries,
                                 initial_backoff=config.initial_backoff,
                                 exponential_backoff=exponential_backoff)

    def is_request_result_retry(self, result: Union[RPCResponse, Exception]) -> bool:
        # default rate limit detection - look for 429 codes
        # override for provider specific checks
        if isinstance(result, HTTPError):
            # HTTPError 429
            if result.response is not None and result.response.status_code == 429:
                return True
        elif not isinstance(result, Exception):
            # must be RPCResponse
            if 'error' in result:
                error = result['error']
                # either instance of RPCError or str
                if not isinstance(error, str) and error.get('code') == 429:
                    return True

        # not retry result
        return False

    @staticmethod
    def is_request_result_timeout(result: Union[RPCResponse, Exception]) -> bool:
        return isinstance(result, (Timeout, TimeoutError))

    def _classify(self, result: Union[RPCResponse, Exception]) -> Optional[RetryReason]:
        if self.is_request_result_timeout(result):
            return RetryReason.TIMED_OUT
        if self.is_request_result_retry(result):
            return RetryReason.RATE_LIMITED
        return None

    def _backoff(self, retry_number: int) -> float:
        if self.exponential_backoff:
            return self.initial_backoff * (2 ** retry_number)
        return self.initial_backoff

    def __call__(self, method, params):
        budgets = {
            RetryReason.RATE_LIMITED: self.rate_limit_retries,
            RetryReason.TIMED_OUT: self.timeout_retries,
        }
        used = {reason: 0 for reason in budgets}
        retries = 0

        while True:
            try:
                result = self.make_request(method, params)
            except Exception as e:  # type: ignore
                result = e

            reason = self._classify(result)

            # completed request
            if reason is None:
                if retries > 0:
                    # not initial call and retry was actually performed
                    self.logger.debug(f'Retried rpc request {method} completed after {retries} retries')
                break

            # max retries with no completion
            if used[reason] >= budgets[reason]:
                self.logger.warn(f'RPC request {method} {reason.value} and was retried '
                                 f'{used[reason]} times but was not completed')
                break

            # backoff before next call
            delay = self._backoff(retries)
            used[reason] += 1
            retries += 1
            if delay:
                self.logger.debug(f'RPC request {method} {reason.value}; retry #{retries} in {delay:.2f}s')
                time.sleep(delay)

        if isinstance(result, Exception):
            raise result
        else:
            # RPCResponse
            return result


class AlchemyRetryRequestMiddleware(RetryRequestMiddleware):
    """
    Automatically retries rpc requests whenever a 429 status code or Alchemy-specific error message is returned.
    """

    def is_request_result_retry(self, result: Union[RPCResponse, Exception]) -> bool:
        """
        Check Alchemy request result for Alchemy-specific retry message.
        """
        # - Websocket result:
        #   {'code': -32000,
        #    'message': 'Your app has exceeded its compute units per second capacity. If you have retries enabled, you
        #              can safely ignore this message. If not, check out https://docs.alchemyapi.io/guides/rate-limits'}
        #
        # - HTTP result: is a requests.exception.HTTPError with status code 429
        # (checked in the base class)

        if super().is_request_result_retry(result):
            return True

        if not isinstance(result, Exception):
            # RPCResponse
            if 'error' in result:
                error = result['error']
                if isinstance(error, str):
                    return 'retries' in error
                else:
                    # RPCError TypeDict
                    return 'retries' in error.get('message', '')

        return False


class InfuraRetryRequestMiddleware(RetryRequestMiddleware):
    """
    Automatically retries rpc requests whenever a 429 status code or Infura-specific error message is returned.
    """

    def is_request_result_retry(self, result: Union[RPCResponse, Exception]) -> bool:
        # see https://infura.io/docs/ethereum/json-rpc/ratelimits
        # {
        #   "jsonrpc": "2.0",
        #   "id": 1,
        #   "error": {
        #     "code": -32005,
        #     "message": "project ID request rate exceeded",
        #     "data": {...}
        #   }
        # }
        if super().is_request_result_retry(result):
            return True

        if not isinstance(result, Exception):
            # RPCResponse
            if 'error' in result:
                error = result['error']
                if not isinstance(error, str):
                    # RPCError TypeDict
                    return error.get('code') == -32005 and 'rate exceeded' in error.get('message', '')

        return False


def get_retry_middleware_class(endpoint: str) -> type:
    if "infura" in endpoint:
        return InfuraRetryRequestMiddleware
    elif "alchemy" in endpoint:
        return AlchemyRetryRequestMiddleware
    return RetryRequestMiddleware

"""
Tests for the Bing Webmaster submitter.
"""

from unittest.mock import AsyncMock, call

import pytest

from indexer.exceptions import ClientError, RateLimitedError, ServerError
from indexer.submitters.bing import (
    BING_ENDPOINT,
    BingChannelConfig,
    BingSubmitter,
    classify_bing_response,
    is_valid_bing_api_key,
)
from tests.helpers import BING_API_KEY, http_response


def urls(count):
    return [f"https://example.com/page-{i}" for i in range(count)]


def channel_config(max_retries=3):
    return BingChannelConfig(
        api_key=BING_API_KEY, site_url="https://example.com", max_retries=max_retries
    )


class TestApiKey:

    @pytest.mark.parametrize("key,expected", [
        (BING_API_KEY, True),
        (BING_API_KEY.upper(), True),
        (BING_API_KEY + "abcd", True),
        ("abc123", False),
        ("z" * 32, False),
        ("", False),
        (None, False),
    ])
    def test_is_valid_bing_api_key(self, key, expected):
        assert is_valid_bing_api_key(key) is expected


class TestClassifyBingResponse:

    def test_success(self):
        assert classify_bing_response(http_response(200, json={"d": None})) is None

    def test_throttle_code_is_rate_limited(self):
        error = classify_bing_response(
            http_response(400, json={"ErrorCode": 5, "Message": "ThrottleHost"})
        )

        assert isinstance(error, RateLimitedError)
        assert error.retryable is True

    def test_http_429(self):
        assert isinstance(classify_bing_response(http_response(429)), RateLimitedError)

    def test_invalid_api_key_code(self):
        error = classify_bing_response(
            http_response(400, json={"ErrorCode": 3, "Message": "InvalidApiKey"})
        )

        assert isinstance(error, ClientError)
        assert error.error_code == "UNAUTHORIZED"

    def test_quota_message_is_terminal(self):
        error = classify_bing_response(http_response(
            400, json={"ErrorCode": 2, "Message": "ERROR!!! Quota remaining for today: 0"}
        ))

        assert isinstance(error, ClientError)
        assert error.error_code == "QUOTA_EXCEEDED"
        assert error.retryable is False

    def test_internal_error_code_is_retryable(self):
        error = classify_bing_response(
            http_response(400, json={"ErrorCode": 1, "Message": "InternalError"})
        )

        assert isinstance(error, ServerError)

    def test_other_code_on_bad_request(self):
        error = classify_bing_response(
            http_response(400, json={"ErrorCode": 8, "Message": "InvalidUrl"})
        )

        assert error.error_code == "BAD_REQUEST"
        assert "InvalidUrl" in str(error)

    def test_unexpected_status_uses_bing_code(self):
        error = classify_bing_response(
            http_response(404, json={"ErrorCode": 14, "Message": "NotFound"})
        )

        assert error.error_code == "BING_14"

    def test_non_json_body(self):
        error = classify_bing_response(http_response(502, content=b"Bad Gateway"))

        assert isinstance(error, ServerError)
        assert "Bad Gateway" in str(error)


class TestBingSubmitter:

    @pytest.mark.asyncio
    async def test_empty_input(self, mock_http_client):
        assert await BingSubmitter().submit([], channel_config()) == []
        mock_http_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_batches_of_one_hundred(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(return_value=http_response(200, json={"d": None}))

        results = await BingSubmitter().submit(urls(250), channel_config())

        sent = [len(c.kwargs["json"]["urlList"]) for c in mock_http_client.post.await_args_list]
        assert sent == [100, 100, 50]
        assert [result.url_count for result in results] == [100, 100, 50]
        assert all(result.success for result in results)
        # One second between batches, none after the last
        assert mock_sleep.await_args_list == [call(1.0), call(1.0)]

    @pytest.mark.asyncio
    async def test_request_shape(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(return_value=http_response(200, json={"d": None}))

        await BingSubmitter().submit(urls(2), channel_config())

        request = mock_http_client.post.await_args
        assert request.args[0] == f"{BING_ENDPOINT}?apikey={BING_API_KEY}"
        assert request.kwargs["json"] == {"siteUrl": "https://example.com", "urlList": urls(2)}

    @pytest.mark.asyncio
    async def test_rate_limited_backoff_then_fail(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(return_value=http_response(429))

        results = await BingSubmitter().submit(urls(10), channel_config(max_retries=3))

        result = results[0]
        assert result.success is False
        assert result.attempts == 3
        assert result.error_code == "RATE_LIMITED"
        assert mock_sleep.await_args_list == [call(2.0), call(4.0)]

    @pytest.mark.asyncio
    async def test_quota_exhausted_not_retried(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(return_value=http_response(
            400, json={"ErrorCode": 2, "Message": "Quota remaining for today: 0"}
        ))

        results = await BingSubmitter().submit(urls(10), channel_config())

        assert results[0].attempts == 1
        assert results[0].error_code == "QUOTA_EXCEEDED"

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_stop_later_batches(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(side_effect=[
            http_response(400, json={"ErrorCode": 8, "Message": "InvalidUrl"}),
            http_response(200, json={"d": None}),
        ])

        results = await BingSubmitter().submit(urls(150), channel_config())

        assert [result.success for result in results] == [False, True]
        assert [result.batch_index for result in results] == [0, 1]

    @pytest.mark.asyncio
    async def test_submit_batch_truncates(self, mock_http_client, mock_sleep):
        mock_http_client.post = AsyncMock(return_value=http_response(200, json={"d": None}))

        result = await BingSubmitter().submit_batch(
            mock_http_client, urls(150), 0, channel_config()
        )

        assert result.url_count == 100
        assert len(mock_http_client.post.await_args.kwargs["json"]["urlList"]) == 100

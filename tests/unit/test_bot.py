"""Unit tests for the Discord client wiring."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
import pytest_asyncio

from kozytrack.core.bot import create_bot
from kozytrack.core.lifespan import lifespan
from kozytrack.dependencies import get_lyrics_service, get_poll_loop, get_spotify_session


@pytest_asyncio.fixture
async def bot(mock_settings):
    return create_bot(mock_settings)


@pytest.fixture
def component_interaction():
    interaction = MagicMock()
    interaction.type = discord.InteractionType.component
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=True)
    interaction.edit_original_response = AsyncMock()
    return interaction


@pytest.mark.asyncio
async def test_start_status_updates_starts_polling(bot):
    """Test startup starts polling when Spotify and the channel are ready."""
    channel = MagicMock()
    poll_loop = MagicMock(start_if_needed=AsyncMock(return_value=True), is_running=True)
    bot.state = SimpleNamespace(
        spotify_session=MagicMock(initialize=AsyncMock(return_value=True)),
        config_store=MagicMock(),
        target_channel_state=MagicMock(),
        poll_loop=poll_loop,
    )

    with patch("kozytrack.core.bot.fetch_target_channel", AsyncMock(return_value=channel)):
        assert await bot.start_status_updates() is True

    poll_loop.start_if_needed.assert_awaited_once_with(channel)


@pytest.mark.asyncio
async def test_start_status_updates_waits_for_authorization(bot):
    """Test startup does not poll while Spotify authorization is pending."""
    poll_loop = MagicMock(start_if_needed=AsyncMock(), is_running=False)
    bot.state = SimpleNamespace(
        spotify_session=MagicMock(initialize=AsyncMock(return_value=False)),
        config_store=MagicMock(),
        target_channel_state=MagicMock(),
        poll_loop=poll_loop,
    )

    with patch("kozytrack.core.bot.fetch_target_channel", AsyncMock(return_value=MagicMock())):
        assert await bot.start_status_updates() is False

    poll_loop.start_if_needed.assert_not_called()


@pytest.mark.asyncio
async def test_on_spotify_authorized_starts_polling(bot):
    poll_loop = MagicMock(start_if_needed=AsyncMock(return_value=True))
    bot.state = SimpleNamespace(poll_loop=poll_loop)

    await bot.on_spotify_authorized()

    poll_loop.start_if_needed.assert_awaited_once_with()


@pytest.mark.asyncio
async def test_on_interaction_routes_lyrics_button(bot, component_interaction):
    component_interaction.data = {"custom_id": "lyrics_track-a"}

    with patch("kozytrack.core.bot.handle_lyrics_button", AsyncMock()) as handler:
        await bot.on_interaction(component_interaction)

    handler.assert_awaited_once_with(component_interaction)


@pytest.mark.asyncio
async def test_on_interaction_unknown_button(bot, component_interaction):
    component_interaction.data = {"custom_id": "something_else"}

    await bot.on_interaction(component_interaction)

    assert component_interaction.response.send_message.call_args.args[0] == "This button is not recognized."


@pytest.mark.asyncio
async def test_on_interaction_handler_error_is_reported(bot, component_interaction):
    """Test a failing button handler answers the user instead of raising."""
    component_interaction.data = {"custom_id": "lyrics_track-a"}

    with patch("kozytrack.core.bot.handle_lyrics_button", AsyncMock(side_effect=RuntimeError("boom"))):
        await bot.on_interaction(component_interaction)

    component_interaction.edit_original_response.assert_awaited_once()


@pytest.mark.asyncio
async def test_on_interaction_ignores_commands(bot, component_interaction):
    component_interaction.type = discord.InteractionType.application_command

    await bot.on_interaction(component_interaction)

    component_interaction.response.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_lifespan_builds_and_tears_down_services(bot):
    """Test the lifespan attaches services to bot state and closes the HTTP client."""
    async with lifespan(bot):
        assert get_spotify_session(bot).callback_server is bot.state.callback_server
        assert get_poll_loop(bot).is_running is False
        assert get_lyrics_service(bot) is None
        assert bot.settings.config_file.exists()
        client = bot.state.http_client

    assert client.is_closed


@pytest.mark.asyncio
async def test_lifespan_enables_lyrics_with_token(mock_settings):
    mock_settings.genius_api_token = "test-genius-token"
    bot = create_bot(mock_settings)

    async with lifespan(bot):
        assert get_lyrics_service(bot) is not None
        assert get_poll_loop(bot).lyrics_button is True


def test_dependencies_raise_before_lifespan():
    client = SimpleNamespace(state=SimpleNamespace())

    with pytest.raises(RuntimeError):
        get_poll_loop(client)
    assert get_lyrics_service(client) is None

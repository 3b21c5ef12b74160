"""Test the handling of messages received from the server, and the client state."""

from __future__ import annotations

import base64
from typing import Any, Callable

import pytest

from irclink import Event, IRCClient
from irclink.state import ListedChannel, WhoisRecord

ClientSent = tuple[IRCClient, list[str]]

ISUPPORT = ":irc.example.org 005 bot PREFIX=(ov)@+ CHANMODES=beI,k,l,imnpst CHANTYPES=# :are supported by this server"


def feed(client: IRCClient, *lines: str) -> None:
    """Process lines, as if they were received from the server."""
    for line in lines:
        client.process_line(line)


def record(client: IRCClient, event: Event, channel: str | None = None) -> list[tuple[Any, ...]]:
    """Subscribe to an event, returning the list its calls are collected in."""
    calls: list[tuple[Any, ...]] = []
    client.events.on(event, lambda *args: calls.append(args), channel=channel)
    return calls


@pytest.fixture(name="joined")
def fixture_joined(client_sent: ClientSent) -> ClientSent:
    """Fixture for a client that has joined #Test, along with a few users."""
    client, sent = client_sent
    feed(
        client,
        ISUPPORT,
        ":bot!bot@example.com JOIN #Test",
        ":irc.example.org 353 bot = #Test :bot @alice +carol bob",
        ":irc.example.org 366 bot #Test :End of /NAMES list.",
    )
    sent.clear()
    return client, sent


def test_raw(client_sent: ClientSent) -> None:
    """Test that every message is emitted as raw."""
    client, _ = client_sent
    raw = record(client, Event.RAW)
    feed(client, ":irc.example.org 002 bot :Your host is irc.example.org", "UNKNOWNCOMMAND foo")
    assert [msg.command for (msg,) in raw] == ["rpl_yourhost", "UNKNOWNCOMMAND"]


def test_welcome(client_sent: ClientSent) -> None:
    """Test registration: the server-given nick is adopted and a WHOIS is sent."""
    client, sent = client_sent
    registered = record(client, Event.REGISTERED)

    feed(client, ":irc.example.org 001 bot_ :Welcome to the Example Network bot_!bot@example.com")
    assert client.nick == "bot_"
    assert client.host_mask == "bot_!bot@example.com"
    assert client.max_line_length == 497 - len("bot_") - len("bot_!bot@example.com")
    assert len(registered) == 1
    assert sent == ["WHOIS bot_"]

    # the WHOIS reply refines the host mask
    feed(
        client,
        ":irc.example.org 311 bot_ bot_ ~bot example.com * :irclink IRC client",
        ":irc.example.org 318 bot_ bot_ :End of /WHOIS list.",
    )
    assert client.host_mask == "~bot@example.com"
    assert client.max_line_length == 497 - len("bot_") - len("~bot@example.com")


def test_welcome_unanswered_whois(client_sent: ClientSent) -> None:
    """Test that repeated registrations without a WHOIS reply do not pile up listeners."""
    client, sent = client_sent
    for _ in range(3):
        feed(client, ":irc.example.org 001 bot :Welcome to the Example Network bot!bot@example.com")
    assert sent == ["WHOIS bot"] * 3
    assert len(client.events.listeners(Event.WHOIS)) == 1

    # a reply for someone else leaves it subscribed
    feed(client, ":irc.example.org 318 bot alice :End of /WHOIS list.")
    assert len(client.events.listeners(Event.WHOIS)) == 1

    feed(
        client,
        ":irc.example.org 311 bot BOT ~bot example.com * :irclink IRC client",
        ":irc.example.org 318 bot BOT :End of /WHOIS list.",
    )
    assert client.events.listeners(Event.WHOIS) == []
    assert client.nick == "BOT"
    assert client.host_mask == "~bot@example.com"


def test_welcome_resets_capabilities(client_sent: ClientSent) -> None:
    """Test that capabilities from a previous registration are forgotten."""
    client, _ = client_sent
    feed(client, ISUPPORT)
    assert client.supported.channel_types == "#"

    feed(client, ":irc.example.org 001 bot :Welcome")
    assert client.supported.channel_types == "&#"
    assert client.supported.prefix_for_mode == {}


def test_myinfo_isupport(client_sent: ClientSent) -> None:
    """Test that RPL_MYINFO and RPL_ISUPPORT update the capabilities."""
    client, _ = client_sent
    feed(client, ":irc.example.org 004 bot irc.example.org ircd-1.0 iowx beIklmnopstv", ISUPPORT)
    assert client.supported.user_modes == "iowx"
    assert client.supported.mode_for_prefix == {"@": "o", "+": "v"}
    assert client.supported.channel_types == "#"


def test_nick_collision(client_sent: ClientSent) -> None:
    """Test that nick collisions are resolved with a numeric suffix."""
    client, sent = client_sent
    feed(client, ":irc.example.org 433 * bot :Nickname is already in use")
    assert sent == ["NICK bot1"]
    assert client.nick == "bot1"

    feed(client, ":irc.example.org 433 * bot1 :Nickname is already in use")
    assert sent == ["NICK bot1", "NICK bot2"]
    assert client.nick == "bot2"


def test_ping(client_sent: ClientSent) -> None:
    """Test that PINGs are answered."""
    client, sent = client_sent
    pings = record(client, Event.PING)
    pongs = record(client, Event.PONG)

    feed(client, "PING :irc.example.org")
    assert sent == ["PONG irc.example.org"]
    assert pings == [("irc.example.org",)]

    feed(client, ":irc.example.org PONG irc.example.org :1")
    assert pongs == [("irc.example.org",)]


def test_privmsg_channel(joined: ClientSent) -> None:
    """Test the events of a channel message."""
    client, _ = joined
    messages = record(client, Event.MESSAGE)
    channel_messages = record(client, Event.CHANNEL_MESSAGE)
    per_channel = record(client, Event.MESSAGE, channel="#Test")
    per_channel_lower = record(client, Event.MESSAGE, channel="#test")
    pms = record(client, Event.PM)

    feed(client, ":alice!a@example.org PRIVMSG #Test :hello there")
    assert [args[:3] for args in messages] == [("alice", "#Test", "hello there")]
    assert [args[:3] for args in channel_messages] == [("alice", "#Test", "hello there")]
    assert [args[:2] for args in per_channel] == [("alice", "hello there")]
    assert [args[:2] for args in per_channel_lower] == [("alice", "hello there")]
    assert pms == []


def test_privmsg_private(client_sent: ClientSent) -> None:
    """Test the events of a private message."""
    client, _ = client_sent
    messages = record(client, Event.MESSAGE)
    channel_messages = record(client, Event.CHANNEL_MESSAGE)
    pms = record(client, Event.PM)

    feed(client, ":alice!a@example.org PRIVMSG BOT :hi")
    assert [args[:3] for args in messages] == [("alice", "BOT", "hi")]
    assert channel_messages == []
    assert [args[:2] for args in pms] == [("alice", "hi")]


def test_notice(client_sent: ClientSent) -> None:
    """Test that notices only emit the notice event."""
    client, _ = client_sent
    notices = record(client, Event.NOTICE)
    messages = record(client, Event.MESSAGE)
    pms = record(client, Event.PM)

    feed(client, ":irc.example.org NOTICE * :*** Looking up your hostname...")
    assert [args[:3] for args in notices] == [(None, "*", "*** Looking up your hostname...")]
    assert messages == []
    assert pms == []


def test_ctcp_action(client_sent: ClientSent) -> None:
    """Test that a CTCP ACTION emits an action, and no message."""
    client, _ = client_sent
    actions = record(client, Event.ACTION)
    messages = record(client, Event.MESSAGE)
    ctcps = record(client, Event.CTCP)
    ctcp_privmsgs = record(client, Event.CTCP_PRIVMSG)

    feed(client, ":alice!a@example.org PRIVMSG bot :\x01ACTION waves\x01")
    assert [args[:3] for args in actions] == [("alice", "bot", "waves")]
    assert messages == []
    assert [args[:4] for args in ctcps] == [("alice", "bot", "ACTION waves", "privmsg")]
    assert [args[:3] for args in ctcp_privmsgs] == [("alice", "bot", "ACTION waves")]


def test_ctcp_version(client_sent: ClientSent) -> None:
    """Test CTCP VERSION requests and replies."""
    client, _ = client_sent
    versions = record(client, Event.CTCP_VERSION)
    ctcp_notices = record(client, Event.CTCP_NOTICE)

    feed(client, ":alice!a@example.org PRIVMSG bot :\x01VERSION\x01")
    assert [args[:2] for args in versions] == [("alice", "bot")]

    feed(client, ":alice!a@example.org NOTICE bot :\x01VERSION mIRC v6.35\x01")
    assert len(versions) == 1
    assert [args[:3] for args in ctcp_notices] == [("alice", "bot", "VERSION mIRC v6.35")]


def test_ctcp_ping(client_sent: ClientSent) -> None:
    """Test that CTCP PINGs are replied to."""
    client, sent = client_sent
    feed(client, ":alice!a@example.org PRIVMSG bot :\x01PING 1234567890\x01")
    assert sent == ["NOTICE alice :\x01PING 1234567890\x01"]

    # replies are not replied to
    sent.clear()
    feed(client, ":alice!a@example.org NOTICE bot :\x01PING 1234567890\x01")
    assert sent == []


def test_unterminated_ctcp(client_sent: ClientSent) -> None:
    """Test that a single CTCP delimiter is a regular message."""
    client, _ = client_sent
    messages = record(client, Event.MESSAGE)
    ctcps = record(client, Event.CTCP)
    feed(client, ":alice!a@example.org PRIVMSG bot :\x01ACTION waves")
    assert len(messages) == 1
    assert ctcps == []


def test_join(client_sent: ClientSent) -> None:
    """Test that joining creates the channel, and emits join events."""
    client, _ = client_sent
    joins = record(client, Event.JOIN)
    per_channel = record(client, Event.JOIN, channel="#test")

    feed(client, ":bot!bot@example.com JOIN #Test")
    channel = client.channels.get("#test")
    assert channel is not None
    assert channel.server_name == "#Test"
    assert [args[:2] for args in joins] == [("#Test", "bot")]
    assert [args[:1] for args in per_channel] == [("bot",)]

    feed(client, ":alice!a@example.org JOIN #TEST")
    assert channel.users == {"alice": ""}
    assert len(client.channels) == 1


def test_join_unknown_channel(client_sent: ClientSent) -> None:
    """Test that joins of others to unknown channels do not create state."""
    client, _ = client_sent
    feed(client, ":alice!a@example.org JOIN #elsewhere")
    assert "#elsewhere" not in client.channels


def test_names(client_sent: ClientSent) -> None:
    """Test the NAMES reply, including the mode query that follows it."""
    client, sent = client_sent
    names = record(client, Event.NAMES)
    per_channel = record(client, Event.NAMES, channel="#Test")

    feed(
        client,
        ISUPPORT,
        ":bot!bot@example.com JOIN #Test",
        ":irc.example.org 353 bot = #Test :bot @alice +carol @+dave bob",
        ":irc.example.org 366 bot #Test :End of /NAMES list.",
    )
    expected = {"bot": "", "alice": "@", "carol": "+", "dave": "@+", "bob": ""}
    channel = client.channels.get("#test")
    assert channel is not None
    assert channel.users == expected
    assert names == [("#Test", expected)]
    assert per_channel == [(expected,)]
    assert sent == ["MODE #Test"]


def test_part(joined: ClientSent) -> None:
    """Test parts of others and ourselves."""
    client, _ = joined
    parts = record(client, Event.PART)
    per_channel = record(client, Event.PART, channel="#test")

    feed(client, ":alice!a@example.org PART #Test :see you")
    channel = client.channels.get("#test")
    assert channel is not None
    assert "alice" not in channel.users
    assert [args[:3] for args in parts] == [("#Test", "alice", "see you")]
    assert [args[:2] for args in per_channel] == [("alice", "see you")]

    feed(client, ":bot!bot@example.com PART #Test")
    assert "#test" not in client.channels
    assert parts[-1][:3] == ("#Test", "bot", None)


def test_kick(joined: ClientSent) -> None:
    """Test kicks of others."""
    client, sent = joined
    kicks = record(client, Event.KICK)

    feed(client, ":alice!a@example.org KICK #Test bob :behave")
    channel = client.channels.get("#test")
    assert channel is not None
    assert "bob" not in channel.users
    assert [args[:4] for args in kicks] == [("#Test", "bob", "alice", "behave")]
    assert sent == []


@pytest.mark.parametrize("auto_rejoin,expected", [(True, ["JOIN #Test"]), (False, [])])
def test_kick_self(joined: ClientSent, auto_rejoin: bool, expected: list[str]) -> None:
    """Test that being kicked forgets the channel, and rejoins if configured."""
    client, sent = joined
    client.options.auto_rejoin = auto_rejoin

    feed(client, ":alice!a@example.org KICK #Test bot :out")
    assert "#test" not in client.channels
    assert sent == expected


def test_nick_change(joined: ClientSent) -> None:
    """Test nick changes, of others and ourselves."""
    client, _ = joined
    other = client.channels.get("#other", create=True)
    assert other is not None
    nicks = record(client, Event.NICK)

    feed(client, ":alice!a@example.org NICK :alicia")
    channel = client.channels.get("#test")
    assert channel is not None
    assert "alice" not in channel.users
    assert channel.users["alicia"] == "@"
    assert [args[:3] for args in nicks] == [("alice", "alicia", ["#Test"])]

    feed(client, ":bot!bot@example.com NICK newbot")
    assert client.nick == "newbot"
    assert client.max_line_length == 497 - len("newbot")
    assert "newbot" in channel.users


def test_quit(joined: ClientSent) -> None:
    """Test that quits remove the user from all the channels they were in."""
    client, _ = joined
    other = client.channels.get("#other", create=True)
    assert other is not None
    other.users["bob"] = ""
    quits = record(client, Event.QUIT)

    feed(client, ":bob!b@example.org QUIT :Quit: leaving")
    channel = client.channels.get("#test")
    assert channel is not None
    assert "bob" not in channel.users
    assert "bob" not in other.users
    assert [args[:3] for args in quits] == [("bob", "Quit: leaving", ["#Test", "#other"])]

    # our own quit is ignored
    feed(client, ":bot!bot@example.com QUIT :bye")
    assert len(quits) == 1


def test_kill(joined: ClientSent) -> None:
    """Test that kills remove the user from all channels."""
    client, _ = joined
    kills = record(client, Event.KILL)

    feed(client, ":oper!o@example.org KILL carol :spamming")
    channel = client.channels.get("#test")
    assert channel is not None
    assert "carol" not in channel.users
    assert [args[:3] for args in kills] == [("carol", "spamming", ["#Test"])]


def test_mode_prefix(joined: ClientSent) -> None:
    """Test that prefix modes update the user's prefixes."""
    client, _ = joined
    added = record(client, Event.MODE_ADD)
    removed = record(client, Event.MODE_REMOVE)

    feed(client, ":alice!a@example.org MODE #Test +ov bob bob")
    channel = client.channels.get("#test")
    assert channel is not None
    assert channel.users["bob"] == "@+"
    assert [args[:4] for args in added] == [("#Test", "alice", "o", "bob"), ("#Test", "alice", "v", "bob")]

    feed(client, ":alice!a@example.org MODE #Test -o bob")
    assert channel.users["bob"] == "+"
    assert [args[:4] for args in removed] == [("#Test", "alice", "o", "bob")]


def test_mode_categories(joined: ClientSent) -> None:
    """Test the parameter handling of the four CHANMODES categories."""
    client, _ = joined
    channel = client.channels.get("#test")
    assert channel is not None

    # a: list modes, b: always a parameter, c: parameter when set, d: no parameter
    feed(client, ":alice!a@example.org MODE #Test +bbklm *!*@one *!*@two secret 10")
    assert sorted(channel.mode) == sorted("bklm")
    assert channel.mode_params == {"b": ["*!*@one", "*!*@two"], "k": ["secret"], "l": ["10"], "m": []}

    feed(client, ":alice!a@example.org MODE #Test -b *!*@one")
    assert "b" in channel.mode
    assert channel.mode_params["b"] == ["*!*@two"]

    feed(client, ":alice!a@example.org MODE #Test -b *!*@two")
    assert "b" not in channel.mode
    assert "b" not in channel.mode_params

    feed(client, ":alice!a@example.org MODE #Test -lk secret")
    assert "l" not in channel.mode
    assert "k" not in channel.mode
    assert channel.mode_params == {"m": []}

    feed(client, ":alice!a@example.org MODE #Test -m")
    assert channel.mode == ""


def test_mode_unset_parameter(joined: ClientSent) -> None:
    """Test that unsetting a category c mode consumes no parameter.

    Some servers do echo the old parameter on removal; the following mode then
    picks it up instead of its own.
    """
    client, _ = joined
    added = record(client, Event.MODE_ADD)
    removed = record(client, Event.MODE_REMOVE)

    feed(client, ":alice!a@example.org MODE #Test -l+k secret")
    assert [args[2:4] for args in removed] == [("l", None)]
    assert [args[2:4] for args in added] == [("k", "secret")]


def test_mode_user(client_sent: ClientSent) -> None:
    """Test that user modes and unknown channels are ignored."""
    client, _ = client_sent
    added = record(client, Event.MODE_ADD)
    feed(client, ":bot MODE bot :+i", ":alice!a@example.org MODE #unknown +m")
    assert added == []


def test_topic(joined: ClientSent) -> None:
    """Test the topic replies and changes."""
    client, _ = joined
    topics = record(client, Event.TOPIC)
    channel = client.channels.get("#test")
    assert channel is not None

    feed(
        client,
        ":irc.example.org 332 bot #Test :Welcome to the test channel",
        ":irc.example.org 333 bot #Test alice!a@example.org 1700000000",
    )
    assert channel.topic == "Welcome to the test channel"
    assert channel.topic_by == "alice!a@example.org"
    assert [args[:3] for args in topics] == [("#Test", "Welcome to the test channel", "alice!a@example.org")]

    feed(client, ":carol!c@example.org TOPIC #Test :New topic")
    assert channel.topic == "New topic"
    assert channel.topic_by == "carol"
    assert topics[-1][:3] == ("#Test", "New topic", "carol")


def test_channel_info(joined: ClientSent) -> None:
    """Test RPL_CHANNELMODEIS and RPL_CREATIONTIME."""
    client, _ = joined
    feed(
        client,
        ":irc.example.org 324 bot #Test +nt",
        ":irc.example.org 329 bot #Test 1600000000",
    )
    channel = client.channels.get("#test")
    assert channel is not None
    assert channel.mode == "nt"
    assert channel.created == "1600000000"


def test_whois(client_sent: ClientSent) -> None:
    """Test the accumulation of WHOIS replies, and the whois() callback."""
    client, sent = client_sent
    results: list[WhoisRecord] = []
    client.whois("Alice", results.append)
    assert sent == ["WHOIS Alice"]

    feed(
        client,
        ":irc.example.org 311 bot alice ~alice example.org * :Alice Liddell",
        ":irc.example.org 312 bot alice irc.example.org :Example Server",
        ":irc.example.org 301 bot alice :Down the rabbit hole",
        ":irc.example.org 313 bot alice :is an IRC operator",
        ":irc.example.org 317 bot alice 42 1700000000 :seconds idle, signon time",
        ":irc.example.org 319 bot alice :@#test +#other",
        ":irc.example.org 330 bot alice alice_account :is logged in as",
    )
    assert results == []

    # another user's reply is not ours
    feed(client, ":irc.example.org 318 bot carol :End of /WHOIS list.")
    assert results == []

    feed(client, ":irc.example.org 318 bot alice :End of /WHOIS list.")
    assert results == [
        WhoisRecord(
            nick="alice",
            user="~alice",
            host="example.org",
            realname="Alice Liddell",
            server="irc.example.org",
            serverinfo="Example Server",
            idle="42",
            channels=["@#test", "+#other"],
            operator="is an IRC operator",
            account="alice_account",
            accountinfo="is logged in as",
            away="Down the rabbit hole",
        )
    ]

    # the callback is only called once
    feed(client, ":irc.example.org 318 bot alice :End of /WHOIS list.")
    assert len(results) == 1


def test_away_outside_whois(client_sent: ClientSent) -> None:
    """Test that RPL_AWAY (e.g. as a reply to a PRIVMSG) does not start a record."""
    client, _ = client_sent
    feed(client, ":irc.example.org 301 bot alice :Down the rabbit hole")
    assert "alice" not in client.whois_data


def test_who(client_sent: ClientSent) -> None:
    """Test that WHO replies are published as WHOIS records."""
    client, _ = client_sent
    whois = record(client, Event.WHOIS)
    feed(client, ":irc.example.org 352 bot #test ~alice example.org irc.example.org alice H@ :0 Alice Liddell")
    assert len(whois) == 1
    (result,) = whois[0]
    assert (result.nick, result.user, result.host, result.server, result.realname) == (
        "alice",
        "~alice",
        "example.org",
        "irc.example.org",
        "Alice Liddell",
    )


def test_list(client_sent: ClientSent) -> None:
    """Test the accumulation of LIST replies."""
    client, sent = client_sent
    starts = record(client, Event.CHANNELLIST_START)
    items = record(client, Event.CHANNELLIST_ITEM)
    lists = record(client, Event.CHANNELLIST)

    client.list()
    assert sent == ["LIST"]

    feed(
        client,
        ":irc.example.org 321 bot Channel :Users  Name",
        ":irc.example.org 322 bot #test 5 :Testing things",
        ":irc.example.org 322 bot #empty 1 :",
        ":irc.example.org 323 bot :End of /LIST",
    )
    expected = [ListedChannel("#test", "5", "Testing things"), ListedChannel("#empty", "1", "")]
    assert starts == [()]
    assert [item for (item,) in items] == expected
    assert lists == [(expected,)]

    # a new listing starts from scratch
    feed(client, ":irc.example.org 321 bot Channel :Users  Name")
    assert client.channellist == []


@pytest.mark.parametrize(
    "end",
    [
        ":irc.example.org 376 bot :End of /MOTD command.",
        ":irc.example.org 422 bot :MOTD File is missing",
    ],
)
def test_motd(client_sent: ClientSent, end: str) -> None:
    """Test that the MOTD is collected, and configured channels are joined after it."""
    client, sent = client_sent
    client.options.channels.append("#secret key")
    motds = record(client, Event.MOTD)

    feed(
        client,
        ":irc.example.org 375 bot :- irc.example.org Message of the day -",
        ":irc.example.org 372 bot :- Be excellent to each other",
        end,
    )
    assert len(motds) == 1
    assert motds[0][0].startswith("- irc.example.org Message of the day -\n- Be excellent to each other\n")
    assert sent == ["JOIN #test", "JOIN #secret key"]


def test_error_reply(client_sent: ClientSent) -> None:
    """Test that error replies are emitted as errors."""
    client, _ = client_sent
    errors = record(client, Event.ERROR)
    feed(client, ":irc.example.org 401 bot nobody :No such nick/channel")
    assert [msg.command for (msg,) in errors] == ["err_nosuchnick"]
    assert errors[0][0].args == ("bot", "nobody", "No such nick/channel")
    assert client.metrics_registry.get_sample_value("irclink_errors_total", {"type": "reply"}) == 1


def test_ignored_replies(client_sent: ClientSent) -> None:
    """Test that informational replies do not raise errors, nor send anything."""
    client, sent = client_sent
    errors = record(client, Event.ERROR)
    feed(
        client,
        ":irc.example.org 002 bot :Your host is irc.example.org",
        ":irc.example.org 003 bot :This server was created today",
        ":irc.example.org 251 bot :There are 3 users on 1 server",
        ":irc.example.org 265 bot 3 10 :Current local users 3, max 10",
    )
    assert errors == []
    assert sent == []


def test_invite_opered(client_sent: ClientSent) -> None:
    """Test INVITE and RPL_YOUREOPER."""
    client, _ = client_sent
    invites = record(client, Event.INVITE)
    opered = record(client, Event.OPERED)

    feed(client, ":alice!a@example.org INVITE bot :#party", ":irc.example.org 381 bot :You are now an IRC operator")
    assert [args[:2] for args in invites] == [("#party", "alice")]
    assert opered == [()]


def test_sasl(make_client: Callable[..., ClientSent]) -> None:
    """Test the SASL PLAIN exchange."""
    client, sent = make_client(sasl=True, password="hunter2")

    feed(client, ":irc.example.org CAP * ACK :sasl")
    assert sent == ["AUTHENTICATE PLAIN"]

    feed(client, "AUTHENTICATE +")
    expected = base64.b64encode(b"bot\0irclink\0hunter2").decode("ascii")
    assert sent[-1] == f"AUTHENTICATE {expected}"

    feed(client, ":irc.example.org 903 bot :SASL authentication successful")
    assert sent[-1] == "CAP END"


def test_sasl_failure(make_client: Callable[..., ClientSent]) -> None:
    """Test that registration continues after a SASL failure."""
    client, sent = make_client(sasl=True, password="wrong")
    errors = record(client, Event.ERROR)

    feed(client, ":irc.example.org 904 bot :SASL authentication failed")
    assert [msg.command for (msg,) in errors] == ["err_saslfail"]
    assert sent == ["CAP END"]


def test_cap_other(make_client: Callable[..., ClientSent]) -> None:
    """Test that other capabilities do not trigger authentication."""
    client, sent = make_client(sasl=True, password="hunter2")
    feed(client, ":irc.example.org CAP * ACK :multi-prefix", ":irc.example.org CAP * NAK :sasl")
    assert sent == []


def test_strip_colors(make_client: Callable[..., ClientSent]) -> None:
    """Test that formatting is stripped from received messages, if configured."""
    client, _ = make_client(strip_colors=True)
    messages = record(client, Event.MESSAGE)
    feed(client, ":alice!a@example.org PRIVMSG bot :\x02bold\x02 and \x0304red\x03")
    assert messages[0][2] == "bold and red"


def test_metrics(joined: ClientSent) -> None:
    """Test the received messages and channels metrics."""
    client, _ = joined
    registry = client.metrics_registry
    assert registry.get_sample_value("irclink_messages_received_total") == 4
    assert registry.get_sample_value("irclink_channels") == 1

"""IRC numeric replies.

Maps the raw command token of a server message (a three-digit numeric) to a
symbolic name, e.g. 001 -> rpl_welcome, and classifies it as either a reply or
an error. Named commands (PRIVMSG, JOIN etc.) are not part of the table and are
classified as normal commands.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import enum


class CommandType(enum.Enum):
    """Classification of a command, as found in the numeric table."""

    NORMAL = "normal"
    REPLY = "reply"
    ERROR = "error"


class IRCNumeric(enum.Enum):
    """Base class for IRC numeric enums."""

    def __str__(self) -> str:
        """Return the numeric in the wire protocol format, e.g. 001."""
        return str(self.value).zfill(3)

    def __repr__(self) -> str:
        """Return the representation of the numeric, e.g. RPL_WELCOME."""
        return f"{self.__class__.__name__}_{self.name}"

    @property
    def command(self) -> str:
        """Return the symbolic command name used for dispatching, e.g. rpl_welcome."""
        return repr(self).lower()


@enum.unique
class RPL(IRCNumeric):
    """Standard IRC RPL_* replies."""

    WELCOME = 1
    YOURHOST = 2
    CREATED = 3
    MYINFO = 4
    ISUPPORT = 5
    YOURID = 42
    UMODEIS = 221
    STATSCONN = 250
    LUSERCLIENT = 251
    LUSEROP = 252
    LUSERUNKNOWN = 253
    LUSERCHANNELS = 254
    LUSERME = 255
    LOCALUSERS = 265
    GLOBALUSERS = 266
    AWAY = 301
    USERHOST = 302
    WHOISUSER = 311
    WHOISSERVER = 312
    WHOISOPERATOR = 313
    ENDOFWHO = 315
    WHOISIDLE = 317
    ENDOFWHOIS = 318
    WHOISCHANNELS = 319
    LISTSTART = 321
    LIST = 322
    LISTEND = 323
    CHANNELMODEIS = 324
    CREATIONTIME = 329
    WHOISACCOUNT = 330
    NOTOPIC = 331
    TOPIC = 332
    TOPICWHOTIME = 333
    INVITING = 341
    WHOREPLY = 352
    NAMREPLY = 353
    ENDOFNAMES = 366
    ENDOFBANLIST = 368
    ENDOFWHOWAS = 369
    MOTD = 372
    MOTDSTART = 375
    ENDOFMOTD = 376
    YOUREOPER = 381
    HOSTHIDDEN = 396
    LOGGEDIN = 900
    LOGGEDOUT = 901
    SASLSUCCESS = 903
    SASLMECHS = 908


@enum.unique
class ERR(IRCNumeric):
    """Erroneous IRC ERR_* replies."""

    NOSUCHNICK = 401
    NOSUCHSERVER = 402
    NOSUCHCHANNEL = 403
    CANNOTSENDTOCHAN = 404
    TOOMANYCHANNELS = 405
    WASNOSUCHNICK = 406
    NOORIGIN = 409
    NORECIPIENT = 411
    NOTEXTTOSEND = 412
    UNKNOWNCOMMAND = 421
    NOMOTD = 422
    NONICKNAMEGIVEN = 431
    ERRONEUSNICKNAME = 432
    NICKNAMEINUSE = 433
    NICKCOLLISION = 436
    USERNOTINCHANNEL = 441
    NOTONCHANNEL = 442
    USERONCHANNEL = 443
    NOTREGISTERED = 451
    NEEDMOREPARAMS = 461
    ALREADYREGISTERED = 462
    PASSWDMISMATCH = 464
    YOUREBANNEDCREEP = 465
    CHANNELISFULL = 471
    UNKNOWNMODE = 472
    INVITEONLYCHAN = 473
    BANNEDFROMCHAN = 474
    BADCHANNELKEY = 475
    NOPRIVILEGES = 481
    CHANOPRIVSNEEDED = 482
    NOOPERHOST = 491
    UMODEUNKNOWNFLAG = 501
    USERSDONTMATCH = 502
    NICKLOCKED = 902
    SASLFAIL = 904
    SASLTOOLONG = 905
    SASLABORTED = 906
    SASLALREADY = 907


NUMERICS: dict[str, IRCNumeric] = {str(numeric): numeric for numeric in (*RPL, *ERR)}


def lookup(raw_command: str) -> tuple[str, CommandType]:
    """Return the symbolic name and classification for a raw command token.

    Unknown tokens (including all named commands) are returned as-is, with a
    NORMAL classification.
    """
    try:
        numeric = NUMERICS[raw_command]
    except KeyError:
        return raw_command, CommandType.NORMAL

    if isinstance(numeric, ERR):
        return numeric.command, CommandType.ERROR
    return numeric.command, CommandType.REPLY

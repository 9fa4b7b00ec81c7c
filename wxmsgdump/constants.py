"""Enumerations and record field names shared across the package."""

from enum import IntEnum


class WeChatDbType(IntEnum):
    """Kinds of database files found in a WeChat data directory."""

    MSG = 0
    MEDIA_MSG = 1
    MICRO_MSG = 2
    OPEN_IM_CONTACT = 3
    OPEN_IM_MEDIA = 4
    OPEN_IM_MSG = 5


class WechatPage(IntEnum):
    """Pages of the message viewer."""

    CHAT = 0
    FRIEND = 1


class MsgType(IntEnum):
    """Message categories derived from a record's Type and SubType columns."""

    UNKNOWN = -1
    PLAIN_TEXT = 0
    IMAGE = 1
    VOICE = 2
    VIDEO = 3
    STICKER = 4
    MAP_INFO = 5
    SHARED_CARD_LINK = 6
    MERGED_CHAT_RECORD = 7
    TEXT_WITH_QUOTE = 8
    TRANSFER = 9
    VOICE_OR_VIDEO_CALL = 10
    FILE = 11
    SYSTEM_NOTICE = 12
    TICKLE = 13


# Account information keys.
STR_WX_VERSION = "wx_version"
STR_WX_EXE_PATH = "wx_exe_path"
STR_WX_PHONE_NUMBER = "wx_phone_number"
STR_WX_USER_NAME = "wx_user_name"
STR_WX_NUMBER = "wx_number"
STR_SECRET_KEY = "secret"
STR_WXID = "wxid"
STR_WX_DATA_PATH = "wx_data_path"
STR_WX_PROCESS_ID = "wx_process_id"

# Query parameter keys.
STR_USERNAME = "userName"
STR_FORWARD = "forward"
STR_LIMIT = "limit"

# Record column names.
STR_STRTALKER = "StrTalker"
STR_REMARK = "Remark"
STR_NICKNAME = "NickName"
STR_CHATCOUNT = "chatCount"
STR_CREATETIME = "CreateTime"
STR_STRCONTENT = "StrContent"
STR_COMPRESSCONTENT = "CompressContent"
STR_LOCALID = "localId"
STR_TALKERID = "TalkerId"
STR_MSGSVRID = "MsgSvrID"
STR_TYPE = "Type"
STR_SUBTYPE = "SubType"
STR_ISSENDER = "IsSender"
STR_SEQUENCE = "Sequence"
STR_STATUSEX = "StatusEx"
STR_FLAGEX = "FlagEx"
STR_STATUS = "Status"
STR_MSGSERVERSEQ = "MsgServerSeq"
STR_MSGSEQUENCE = "MsgSequence"
STR_DISPLAYCONTENT = "DisplayContent"
STR_BYTESEXTRA = "BytesExtra"
STR_BYTESTRANS = "BytesTrans"
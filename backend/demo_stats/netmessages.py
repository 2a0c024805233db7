"""
Protobuf definitions for the network messages carried inside demo packets.

Only the messages the match aggregator consumes are declared. Field numbers
follow netmessages_public.proto and cstrike15_usermessages_public.proto of the
CS:GO protocol. The classes are built once, at import time, from a
FileDescriptorProto registered in a private descriptor pool.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = 'demo_stats.netmessages'

_F = descriptor_pb2.FieldDescriptorProto

TYPE_FLOAT = _F.TYPE_FLOAT
TYPE_UINT64 = _F.TYPE_UINT64
TYPE_INT32 = _F.TYPE_INT32
TYPE_BOOL = _F.TYPE_BOOL
TYPE_STRING = _F.TYPE_STRING
TYPE_MESSAGE = _F.TYPE_MESSAGE
TYPE_BYTES = _F.TYPE_BYTES

OPTIONAL = _F.LABEL_OPTIONAL
REPEATED = _F.LABEL_REPEATED

# name -> {field name: (number, type, label, nested type path)}
_MESSAGES = {
    'CSVCMsg_CreateStringTable': {
        'name': (1, TYPE_STRING, OPTIONAL, None),
        'max_entries': (2, TYPE_INT32, OPTIONAL, None),
        'num_entries': (3, TYPE_INT32, OPTIONAL, None),
        'user_data_fixed_size': (4, TYPE_BOOL, OPTIONAL, None),
        'user_data_size': (5, TYPE_INT32, OPTIONAL, None),
        'user_data_size_bits': (6, TYPE_INT32, OPTIONAL, None),
        'flags': (7, TYPE_INT32, OPTIONAL, None),
        'string_data': (8, TYPE_BYTES, OPTIONAL, None),
    },
    'CSVCMsg_UpdateStringTable': {
        'table_id': (1, TYPE_INT32, OPTIONAL, None),
        'num_changed_entries': (2, TYPE_INT32, OPTIONAL, None),
        'string_data': (3, TYPE_BYTES, OPTIONAL, None),
    },
    'CSVCMsg_UserMessage': {
        'msg_type': (1, TYPE_INT32, OPTIONAL, None),
        'msg_data': (2, TYPE_BYTES, OPTIONAL, None),
        'passthrough': (3, TYPE_INT32, OPTIONAL, None),
    },
    'CSVCMsg_GameEvent': {
        'event_name': (1, TYPE_STRING, OPTIONAL, None),
        'eventid': (2, TYPE_INT32, OPTIONAL, None),
        'keys': (3, TYPE_MESSAGE, REPEATED, 'CSVCMsg_GameEvent.key_t'),
        'passthrough': (4, TYPE_INT32, OPTIONAL, None),
    },
    'CSVCMsg_GameEventList': {
        'descriptors': (1, TYPE_MESSAGE, REPEATED, 'CSVCMsg_GameEventList.descriptor_t'),
    },
    'CCSUsrMsg_SayText2': {
        'ent_idx': (1, TYPE_INT32, OPTIONAL, None),
        'chat': (2, TYPE_BOOL, OPTIONAL, None),
        'msg_name': (3, TYPE_STRING, OPTIONAL, None),
        'params': (4, TYPE_STRING, REPEATED, None),
        'textallchatsupport': (5, TYPE_BOOL, OPTIONAL, None),
    },
}

_NESTED = {
    'CSVCMsg_GameEvent': {
        'key_t': {
            'type': (1, TYPE_INT32, OPTIONAL, None),
            'val_string': (2, TYPE_STRING, OPTIONAL, None),
            'val_float': (3, TYPE_FLOAT, OPTIONAL, None),
            'val_long': (4, TYPE_INT32, OPTIONAL, None),
            'val_short': (5, TYPE_INT32, OPTIONAL, None),
            'val_byte': (6, TYPE_INT32, OPTIONAL, None),
            'val_bool': (7, TYPE_BOOL, OPTIONAL, None),
            'val_uint64': (8, TYPE_UINT64, OPTIONAL, None),
            'val_wstring': (9, TYPE_BYTES, OPTIONAL, None),
        },
    },
    'CSVCMsg_GameEventList': {
        'key_t': {
            'type': (1, TYPE_INT32, OPTIONAL, None),
            'name': (2, TYPE_STRING, OPTIONAL, None),
        },
        'descriptor_t': {
            'eventid': (1, TYPE_INT32, OPTIONAL, None),
            'name': (2, TYPE_STRING, OPTIONAL, None),
            'keys': (3, TYPE_MESSAGE, REPEATED, 'CSVCMsg_GameEventList.key_t'),
        },
    },
}


def _add_fields(message_proto, fields):
    for field_name, (number, field_type, label, type_name) in fields.items():
        field = message_proto.field.add(name=field_name, number=number, type=field_type, label=label)
        if type_name:
            field.type_name = f'.{PACKAGE}.{type_name}'


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name='demo_stats/netmessages.proto',
        package=PACKAGE,
        syntax='proto2',
    )
    for name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=name)
        for nested_name, nested_fields in _NESTED.get(name, {}).items():
            _add_fields(message_proto.nested_type.add(name=nested_name), nested_fields)
        _add_fields(message_proto, fields)
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f'{PACKAGE}.{name}'))


CSVCMsg_CreateStringTable = _message_class('CSVCMsg_CreateStringTable')
CSVCMsg_UpdateStringTable = _message_class('CSVCMsg_UpdateStringTable')
CSVCMsg_UserMessage = _message_class('CSVCMsg_UserMessage')
CSVCMsg_GameEvent = _message_class('CSVCMsg_GameEvent')
CSVCMsg_GameEventList = _message_class('CSVCMsg_GameEventList')
CCSUsrMsg_SayText2 = _message_class('CCSUsrMsg_SayText2')

# SVC_Messages
svc_CreateStringTable = 12
svc_UpdateStringTable = 13
svc_UserMessage = 23
svc_GameEvent = 25
svc_GameEventList = 30

# ECstrike15UserMessages
CS_UM_SayText2 = 6

"""
UserApps Payload Codec

Builds the `UserApps` protobuf message at import time from a descriptor, so no
generated module has to be shipped:

    message UserApps {
        repeated uint32 apps = 1 [packed=true];
        required double lat = 2;
        required double lon = 3;
    }
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory, text_format
from google.protobuf.message import DecodeError, EncodeError

from utils.errors import SerializationError
from utils.schemas import AppsInstalled

_PACKAGE = "appsinstalled"
_MESSAGE = "UserApps"


def _build_user_apps_class() -> type:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="appsinstalled.proto",
        package=_PACKAGE,
        syntax="proto2",
    )
    message_proto = file_proto.message_type.add(name=_MESSAGE)

    FieldProto = descriptor_pb2.FieldDescriptorProto
    apps_field = message_proto.field.add(
        name="apps",
        number=1,
        type=FieldProto.TYPE_UINT32,
        label=FieldProto.LABEL_REPEATED,
    )
    apps_field.options.packed = True
    for name, number in (("lat", 2), ("lon", 3)):
        message_proto.field.add(
            name=name,
            number=number,
            type=FieldProto.TYPE_DOUBLE,
            label=FieldProto.LABEL_REQUIRED,
        )

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    descriptor = pool.FindMessageTypeByName(f"{_PACKAGE}.{_MESSAGE}")
    return message_factory.GetMessageClass(descriptor)


UserApps = _build_user_apps_class()


def to_message(record: AppsInstalled):
    """Build a UserApps message from a record.

    Raises:
        SerializationError: If a field value does not fit the schema
    """
    try:
        message = UserApps(lon=record.lon, lat=record.lat)
        message.apps.extend(record.apps)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Could not build UserApps for {record.key}: {e}") from e
    return message


def encode(record: AppsInstalled) -> bytes:
    """Serialize a record to the binary UserApps payload.

    Raises:
        SerializationError: If the message cannot be built or serialized
    """
    message = to_message(record)
    try:
        return message.SerializeToString()
    except EncodeError as e:
        raise SerializationError(f"Could not serialize {record.key}: {e}") from e


def encode_text(record: AppsInstalled) -> str:
    """Render a record as one-line protobuf text, for dry runs."""
    return text_format.MessageToString(to_message(record), as_one_line=True)


def decode(payload: bytes) -> tuple[float, float, list[int]]:
    """Parse a binary UserApps payload back into (lat, lon, apps).

    Raises:
        SerializationError: If the payload is not a complete UserApps message
    """
    message = UserApps()
    try:
        message.ParseFromString(payload)
    except DecodeError as e:
        raise SerializationError(f"Could not decode UserApps payload: {e}") from e
    if not message.IsInitialized():
        raise SerializationError("UserApps payload is missing required fields")
    return message.lat, message.lon, list(message.apps)

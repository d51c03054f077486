"""
Settings shared by the transports and the connection classes.

The values below are the built-in defaults. Call configure() to apply the btchat*.cfg files
(see btchat.config.config for the layering.)
"""
import sys
import uuid

from configobj import ConfigObjError

from btchat.config.config import configure_module

# The well-known service both ends listen on and connect to
service_uuid = 'fa87c0d0-afac-11de-8a39-0800200c9a66'

# The maximum number of bytes read from the connection at a time
read_buffer_size = 1024

# RFCOMM
rfcomm_channel = 1
adapter_address = ''

# TCP
tcp_host = '127.0.0.1'
tcp_port = 51234

config_name = 'btchat'


def service_id() -> uuid.UUID:
    """ the configured service identifier """
    return uuid.UUID(str(service_uuid))


def configure(directory=None, user_file=None):
    """
    Loads the configuration files and applies them to this module.
    Raises ConfigObjError if a value is invalid, including a service_uuid that is not a UUID.
    :param directory: where to find the configuration files. Defaults to this package.
    :param user_file: the user's override file. Defaults to ~/btchat.cfg
    """
    conf = configure_module(sys.modules[__name__], config_name, directory, user_file)
    try:
        service_id()
    except ValueError as e:
        raise ConfigObjError("the config file %s failed validation: %s.settings.service_uuid: %r is not a UUID"
                             % (config_name, config_name, service_uuid)) from e
    return conf

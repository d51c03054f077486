"""
Layered configuration files.

A configuration named `name` is assembled from these files, later ones overriding earlier ones:

- `name.default.cfg` in the given directory
- `name.<os>.cfg` in the given directory, e.g. `btchat.linux.cfg`
- `~/name.cfg`, the user's overrides
- `name.cfg` in the given directory

None of the files need exist. The result is validated against `name.schema.cfg`, which also
supplies the default values.
"""
import logging
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('btchat')
    'btchat'
    >>> config_flavor('btchat', 'linux')
    'btchat.linux'
    """
    return name if not flavor else name + '.' + flavor


def config_filename(name, directory):
    return os.path.join(directory, name + config_extension)


def load_config_file_base(file, must_exist=True) -> ConfigObj:
    """
    Loads a single configuration file.
    :param file:        The configuration file to load
    :param must_exist:  when True, a missing file raises IOError. Otherwise an empty configuration
        is returned.
    """
    if not must_exist and not os.path.exists(file):
        return ConfigObj()
    try:
        return ConfigObj(file, file_error=True)
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, flavor=None) -> ConfigObj:
    """
    Loads a specialization of a configuration, if it exists.
    """
    return load_config_file_base(config_filename(config_flavor(name, flavor), directory), False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser(os.path.join('~', name + config_extension))


def load_config(name, directory, user_file=None) -> ConfigObj:
    """
    Loads and validates all the configuration files for the given name.
    :param name:        the base name of the configuration files
    :param directory:   the directory holding the configuration files and the schema
    :param user_file:   the user's override file. Defaults to ~/name.cfg
    :return: the merged, validated configuration
    """
    schema = config_filename(config_flavor(name, 'schema'), directory)
    try:
        config = ConfigObj(configspec=schema)
    except (IOError, ConfigObjError) as e:
        raise ConfigObjError("unable to load the schema %s: %s" % (schema, e)) from e

    layers = (config_flavor_file(name, directory, 'default'),
              config_flavor_file(name, directory, os_name()),
              load_config_file_base(user_file or user_config_file(name), must_exist=False),
              config_flavor_file(name, directory))
    for layer in layers:
        config.merge(layer)

    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        problems = ["%s: %s" % ('.'.join(sections + [key or '']), error or 'missing')
                    for sections, key, error in flatten_errors(config, result)]
        raise ConfigObjError("the config file %s failed validation: %s" % (name, '; '.join(problems)))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the nested section named by the path, or None if any part is missing.
    :param conf:    The root configuration
    :param path:    An iterable of section names
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf(conf: Section, target):
    """
    Sets each attribute on the target that has a same-named value in the configuration.
    Values with no matching attribute are ignored.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)
        else:
            logger.debug("ignoring unknown setting %s" % k)


def configure_module(module, config_name, directory=None, user_file=None):
    """
    Applies a configuration to the values of a module.
    The values are taken from the section path matching the module name, so the settings for
    module `a.b` are in the section `[a] [[b]]`.
    :param module: the module to configure
    :param config_name: the base name of the configuration files
    :param directory: where the configuration files are. Defaults to the module's directory.
    :return: the loaded configuration
    """
    directory = directory or os.path.dirname(module.__file__)
    conf = load_config(config_name, directory, user_file)
    section = fetch_conf_path(conf, module.__name__.split('.'))
    if section:
        apply_conf(section, module)
    return conf

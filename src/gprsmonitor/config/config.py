import os
import platform

from configobj import ConfigObj, ConfigObjError, Section
from validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

# the name of the monitor configuration
config_name = 'gprsmonitor'

# the directory holding the default and schema files shipped with the package
config_directory = os.path.dirname(__file__)


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def load_schema_file(file):
    """ Loads a configspec. Spec values are not split into lists. """
    try:
        return ConfigObj(file, interpolation=False, list_values=False, _inspec=True, file_error=True)
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name.
    :param name:    The name of the base configuration
    :param subpart: The name of the specialization.
    :return: The ConfigObj for the configuration file.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    config = load_config_file_base(file, False)
    return config


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


def load_config(name=config_name, directory=config_directory, package_directory=config_directory):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones taking precedence:
        - the default specialization shipped in the package directory
        - the platform specialization shipped in the package directory
        - the user override (~/name.cfg)
        - the base configuration in the given directory
        The merged configuration is validated against the schema (name.schema.cfg), which also
        provides the defaults for anything left unset.
    :param directory: the location of the configuration files
    :param package_directory: the location of the default, platform and schema files
    :return: the validated ConfigObj
    """
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, package_directory, 'default')
    platform_config = config_flavor_file(name, package_directory, os_name())
    user_config = load_config_file_base(os.path.expanduser(
        '~/' + name + config_extension), must_exist=False)
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    config.configspec = load_schema_file(config_filename(config_flavor(name, 'schema'), package_directory))
    validator = Validator()
    result = config.validate(validator, preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def apply_conf(conf: Section, target):
    """
    Applies the attributes contained in a configuration object to a target object.
    It does this by iterating over the items in the configuration and setting any attributes with the same name.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)


import os
import shutil
import tempfile
import textwrap
import types
import unittest
from unittest.mock import Mock, patch

from configobj import ConfigObjError, ConfigObj
from hamcrest import assert_that, is_, calling, raises, equal_to, has_property, is_not

from btchat import settings
from btchat.config.config import config_filename, config_flavor, load_config_file_base, load_config, \
    map_os_name, fetch_conf_path, apply_conf, configure_module, config_flavor_file

schema = """
[sample]
    [[module]]
        value1 = string(default='abc')
        value2 = integer(min=1, max=10, default=4)
        value3 = list(default=list())
"""


class ConfigTestCase(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.user_file = os.path.join(self.directory, 'user', 'sample.cfg')
        self.write('sample.schema', schema)

    def tearDown(self):
        shutil.rmtree(self.directory)

    def write(self, name, content):
        path = config_filename(name, self.directory)
        with open(path, 'w') as f:
            f.write(textwrap.dedent(content))
        return path

    def load(self):
        return load_config('sample', self.directory, self.user_file)

    def test_config_file_not_found(self):
        assert_that(calling(load_config_file_base).with_args(os.path.join(self.directory, 'blah.cfg')),
                    raises(IOError))

    def test_missing_file_allowed(self):
        conf = load_config_file_base(os.path.join(self.directory, 'blah.cfg'), must_exist=False)
        assert_that(conf.dict(), is_({}))
        assert_that(config_flavor_file('blah', self.directory, 'default').dict(), is_({}))

    def test_config_file_invalid_syntax(self):
        path = self.write('broken', '[[section]\nvalue = 1\n')
        assert_that(calling(load_config_file_base).with_args(path), raises(ConfigObjError, 'broken.cfg'))

    def test_missing_schema(self):
        assert_that(calling(load_config).with_args('nothing', self.directory), raises(ConfigObjError, 'schema'))

    def test_defaults_from_schema(self):
        conf = self.load()
        assert_that(conf['sample']['module']['value1'], is_('abc'))
        assert_that(conf['sample']['module']['value2'], is_(4))

    def test_layers_override_in_order(self):
        self.write('sample.default', """
            [sample]
                [[module]]
                    value1 = default
                    value2 = 2
            """)
        os.makedirs(os.path.dirname(self.user_file))
        with open(self.user_file, 'w') as f:
            f.write("[sample]\n[[module]]\nvalue2 = 3\n")
        self.write('sample', """
            [sample]
                [[module]]
                    value1 = local
            """)
        conf = self.load()
        assert_that(conf['sample']['module']['value1'], is_('local'))
        assert_that(conf['sample']['module']['value2'], is_(3))

    def test_platform_layer(self):
        with patch('btchat.config.config.os_name', return_value='testos'):
            self.write('sample.testos', "[sample]\n[[module]]\nvalue1 = platform\n")
            conf = self.load()
        assert_that(conf['sample']['module']['value1'], is_('platform'))

    def test_invalid_value(self):
        self.write('sample', "[sample]\n[[module]]\nvalue2 = 11\n")
        assert_that(calling(self.load), raises(ConfigObjError, 'failed validation: sample.module.value2'))

    def test_configure_module(self):
        self.write('sample', "[sample]\n[[module]]\nvalue1 = configured\nunknown = 1\n")
        module = types.ModuleType('sample.module')
        module.value1 = None
        module.value2 = None
        configure_module(module, 'sample', self.directory, self.user_file)
        assert_that(module.value1, is_('configured'))
        assert_that(module.value2, is_(4))
        assert_that(module, is_not(has_property('unknown')))
        assert_that(module, is_not(has_property('value3')))

    def test_config_flavor(self):
        assert_that(config_flavor('sample'), is_('sample'))
        assert_that(config_flavor('sample', 'default'), is_('sample.default'))

    def test_map_os_name(self):
        assert_that(map_os_name('Windows'), is_('windows'))
        assert_that(map_os_name('Darwin'), is_('osx'))
        assert_that(map_os_name('Linux'), is_('linux'))

    def test_non_existent_config_path(self):
        assert_that(fetch_conf_path(ConfigObj(), ['a', 'b']), is_(None))

    def test_apply_conf(self):
        target = Mock(spec=['value1'])
        apply_conf({'value1': 'x', 'other': 'y'}, target)
        assert_that(target.value1, is_('x'))


class SettingsTest(unittest.TestCase):
    names = ('service_uuid', 'read_buffer_size', 'rfcomm_channel', 'adapter_address', 'tcp_host', 'tcp_port')

    def setUp(self):
        self.saved = {name: getattr(settings, name) for name in self.names}
        self.directory = tempfile.mkdtemp()

    def tearDown(self):
        for name, value in self.saved.items():
            setattr(settings, name, value)
        shutil.rmtree(self.directory)

    def test_packaged_configuration(self):
        settings.configure(user_file=os.path.join(self.directory, 'none.cfg'))
        assert_that(settings.service_uuid, is_('fa87c0d0-afac-11de-8a39-0800200c9a66'))
        assert_that(settings.read_buffer_size, is_(1024))
        assert_that(settings.rfcomm_channel, is_(1))
        assert_that(settings.tcp_port, is_(51234))

    def test_user_overrides(self):
        user_file = os.path.join(self.directory, 'btchat.cfg')
        with open(user_file, 'w') as f:
            f.write("[btchat]\n[[settings]]\nrfcomm_channel = 5\n"
                    "service_uuid = 00001101-0000-1000-8000-00805f9b34fb\n")
        settings.configure(user_file=user_file)
        assert_that(settings.rfcomm_channel, is_(5))
        assert_that(str(settings.service_id()), is_(equal_to('00001101-0000-1000-8000-00805f9b34fb')))

    def test_malformed_service_uuid_is_rejected(self):
        user_file = os.path.join(self.directory, 'btchat.cfg')
        with open(user_file, 'w') as f:
            f.write("[btchat]\n[[settings]]\nservice_uuid = zzzzzzzz-afac-11de-8a39-0800200c9a66\n")
        assert_that(calling(settings.configure).with_args(user_file=user_file),
                    raises(ConfigObjError, 'service_uuid'))


if __name__ == '__main__':  # pragma no cover
    unittest.main()

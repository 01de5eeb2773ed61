import os
import toml
import munch
import types


EXPORTER_CONFIG_DIR = os.environ.get('ZFS_EXPORTER_CONFIG_DIR', '/etc/zfs-exporter')

# 默认配置, 配置目录下的 toml 会覆盖这里的值
DEFAULT_CONF = {
    'namespace': 'node',
    'zfs': {
        'platform': 'auto',             # auto / linux / solaris
        'procfs_path': '/proc',
        'procfs_base': 'spl/kstat/zfs',
        'zpool_io_glob': '*/io',
        'kstat_command': ['kstat', '-j', '/zfs|zone_zfs/:::'],
        'kstat_timeout': 0,             # 0 表示不设超时, 由调用方控制
        'path_map': {
            'zfs_abd': 'abdstats',
            'zfs_arc': 'arcstats',
            'zfs_dbuf': 'dbuf_stats',
            'zfs_dmu_tx': 'dmu_tx',
            'zfs_dnode': 'dnodestats',
            'zfs_fm': 'fm',
            'zfs_vdev_cache': 'vdev_cache_stats',  # vdev_cache 已废弃
            'zfs_vdev_mirror': 'vdev_mirror_stats',
            'zfs_xuio': 'xuio_stats',
            'zfs_zfetch': 'zfetchstats',
            'zfs_zil': 'zil',
        },
    },
    'exporter': {
        'host': '0.0.0.0',
        'port': 9134,
    },
}


def merge_conf(conf1: munch.Munch, conf2: munch.Munch):
    for k, v in conf2.items():
        if conf1.get(k):
            if isinstance(conf1[k], dict) and isinstance(conf2[k], dict):
                conf1[k] = merge_conf(conf1[k], conf2[k])
            else:
                conf1[k] = v
        else:
            conf1[k] = v
    return conf1


def load_conf(config_dir=EXPORTER_CONFIG_DIR):
    conf = munch.Munch.fromDict(DEFAULT_CONF)
    for file_name in ['core.toml', 'override.toml']:
        config_file = os.path.join(config_dir, file_name)
        if os.path.exists(config_file):  # 若有这个文件，那么应该是合法的
            try:
                with open(config_file) as f:
                    conf = merge_conf(conf, munch.Munch.fromDict(toml.loads(f.read())))
            except Exception as e:
                print(f'merge {file_name} 失败：{e}')
    conf.try_get = types.MethodType(try_get, conf)
    return conf


def try_get(self, *args, default=None):
    """
    CONF.get('a', {}).get('b', {}).get('c', {})
    ---->
    CONF.try_get('a.b.c')
    CONF.try_get('a.b', 'c')
    CONF.try_get('zfs', 'kstat_timeout', default=0)

    :param default:
    :param self:
    :param args:
    :return:
    """
    config = self
    args = sum([a.split('.') for a in args], [])
    for arg in args[:-1]:
        config = config.get(arg, {})
    return config.get(args[-1], default)


CONF = load_conf()

""" pytest 启动时把仓库根目录放到 sys.path 最前面, 保证导入的是仓库里的 conf / logm / utils / exporter """

import os, sys

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')


@pytest.fixture
def data_dir():
    return DATA_DIR


@pytest.fixture
def procfs_path():
    return os.path.join(DATA_DIR, 'proc')


@pytest.fixture
def kstat_output():
    with open(os.path.join(DATA_DIR, 'kstat.json'), 'rb') as f:
        return f.read()

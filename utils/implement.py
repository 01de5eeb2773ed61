import subprocess
import time


def run_cmd(cmd, timeout=None):
    """
    执行外部命令并返回 stdout, 命令以参数列表传入, 不经过 shell
    :param cmd: 参数列表, 如 ['kstat', '-j', '/zfs|zone_zfs/:::']
    :param timeout: 秒, None 表示不设超时
    :return: stdout bytes
    """
    from logm import logger
    start_time = time.time()
    cmd_str = ' '.join(cmd)
    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, timeout=timeout, check=True)
    except subprocess.CalledProcessError as e:
        time_elapsed = time.time() - start_time
        logger.error(f'time_elapsed: {time_elapsed}, {cmd_str} -> Run Failed with exit code {e.returncode}, '
                     f'stderr: {(e.stderr or b"").decode(errors="replace")}')
        raise
    except subprocess.TimeoutExpired:
        logger.error(' '.join([cmd_str, '->', 'Run Timeout']))
        raise
    return result.stdout

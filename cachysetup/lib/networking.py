import ssl
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import urlopen

from .exceptions import DownloadError
from .general import ToolRunner
from .output import debug


def check_online(runner: ToolRunner, host: str = 'archlinux.org', timeout: int = 5) -> bool:
	result = runner.run(['ping', '-c1', f'-W{timeout}', host], timeout=timeout + 5)
	if not result.ok:
		debug(f'{host} is not reachable: {result.status.value} {result.stdout.strip()}')
	return result.ok


def fetch_data_from_url(url: str, params: dict[str, str] | None = None, timeout: int = 30) -> str:
	ssl_context = ssl.create_default_context()

	if params is not None:
		encoded = urlencode(params)
		full_url = f'{url}?{encoded}'
	else:
		full_url = url

	try:
		response = urlopen(full_url, context=ssl_context, timeout=timeout)
		data = response.read().decode('UTF-8')
		return data
	except URLError as e:
		raise DownloadError(f'Unable to fetch data from url: {url}\n{e}')
	except Exception as e:
		raise DownloadError(f'Unexpected error when parsing response: {e}')

"""
Tests for the command line entry point (leolink/__main__.py)
"""
import leolink.__main__ as cli
import leolink.agent.status as status
import leolink.browser.chrome_relay as relay


def _no_logging(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda verbose=False: None)


def test_probe_offline(monkeypatch, capsys):
    _no_logging(monkeypatch)
    seen = []

    async def fake_probe(url):
        seen.append(url)
        return False

    monkeypatch.setattr(status, "probe_server", fake_probe)
    assert cli.main(["probe", "--url", "ws://127.0.0.1:9"]) == 1
    assert capsys.readouterr().out.strip() == "OFF"
    assert seen == ["ws://127.0.0.1:9"]


def test_probe_online(monkeypatch, capsys):
    _no_logging(monkeypatch)

    async def fake_probe(url):
        return True

    monkeypatch.setattr(status, "probe_server", fake_probe)
    assert cli.main(["probe"]) == 0
    assert capsys.readouterr().out.strip() == "ON"


def test_agent_overrides(monkeypatch):
    args = cli._build_parser().parse_args(["agent", "--url", "ws://h:1", "--cdp-port", "9333", "--serialize"])
    config = cli._apply_overrides(cli.LinkConfig.from_env({}), args)
    assert config.server_url == "ws://h:1"
    assert config.cdp_port == 9333
    assert config.serialize_commands is True


def test_serve_exits_when_relay_is_not_running(monkeypatch, tmp_path):
    _no_logging(monkeypatch)
    monkeypatch.delenv("LEO_LINK_URL", raising=False)
    started = []

    def fake_start(host, port, moments_dir):
        started.append((host, port))
        # never started, as after a failed bind
        return relay.ChromeRelayServer(host, port, moments_dir=tmp_path)

    monkeypatch.setattr(relay, "start_chrome_relay", fake_start)
    assert cli.main(["serve", "--port", "2999"]) == 1
    assert started == [("127.0.0.1", 2999)]

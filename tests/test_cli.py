import pytest
from click.testing import CliRunner

from infrabase.cli import cli

from conftest import fake_keypair


@pytest.fixture
def runner(tmp_path, monkeypatch):
    env_file = tmp_path / "env"
    env_file.write_text("")
    monkeypatch.setattr("infrabase.cli.machines.generate_keypair", fake_keypair)
    return CliRunner(env={
        "INFRABASE_ENV_FILE": str(env_file),
        "DATABASE_URL": f"sqlite:///{tmp_path / 'infrabase.db'}",
        "WIREGUARD_IPV4_START": "10.10.0.1",
        "WIREGUARD_IPV4_END": "10.10.0.254",
        "WIREGUARD_IPV6_START": "fd10::1",
        "WIREGUARD_IPV6_END": "fd10::ffff",
        "DEFAULT_SSH_PORT": "22",
        "DEFAULT_SSH_USER": "root",
        "DEFAULT_WIREGUARD_PORT": "51820",
        "DEFAULT_OWNER": "ops",
        "DEFAULT_PROVIDER": None,
        "WIREGUARD_PEERS_PATH_TEMPLATE": str(tmp_path / "peers-{hostname}.nix"),
    })


def invoke(runner, *args, ok=True):
    result = runner.invoke(cli, list(args), catch_exceptions=False)
    if ok:
        assert result.exit_code == 0, result.output
    return result


@pytest.fixture
def mesh(runner):
    invoke(runner, "init-db")
    invoke(runner, "owner", "add", "ops")
    invoke(runner, "network", "add", "public")
    invoke(runner, "network", "add", "vpn")
    invoke(runner, "link", "add", "public", "vpn", "1")
    invoke(runner, "add", "a")
    invoke(runner, "add", "b", "--ssh-port", "2222")
    invoke(runner, "add", "host10")
    invoke(runner, "add", "host2")
    invoke(runner, "address", "add", "a", "public", "203.0.113.1")
    invoke(runner, "address", "add", "b", "vpn", "10.8.0.2", "--ssh-port", "2200")
    return runner


def test_ls(mesh):
    out = invoke(mesh, "ls").output
    lines = out.splitlines()
    assert lines[0].startswith("HOSTNAME")
    assert [l.split()[0] for l in lines[2:]] == ["a", "b", "host2", "host10"]
    assert "public=203.0.113.1" in lines[2]
    assert lines[2].split()[1] == "10.10.0.1"


def test_wg_quick(mesh):
    out = invoke(mesh, "wg-quick", "--for", "a").output
    assert out.startswith("# infrabase-generated wg-quick config for a\n\n[Interface]\nAddress = 10.10.0.1/32, fd10::1/128\n")
    assert "ListenPort = 51820" in out
    assert out.index("# b\n") < out.index("# host2\n") < out.index("# host10\n")
    assert "# a\n" not in out
    b_block = out.split("# b\n", 1)[1].split("\n\n", 1)[0]
    assert "Endpoint = 10.8.0.2:51820" in b_block
    assert "AllowedIPs = 10.10.0.2/32, fd10::2/128" in b_block


def test_ssh_config(mesh):
    out = invoke(mesh, "ssh-config", "--for", "a").output
    assert out.startswith("# infrabase-generated SSH config for a\n")
    assert "Host b\n  HostName 10.8.0.2\n  Port 2200\n" in out
    # host2 has no addresses: fall back to its WireGuard address
    assert "Host host2\n  HostName 10.10.0.4\n  Port 22\n" in out
    assert "Host a\n" in out


def test_keepalive(mesh):
    invoke(mesh, "wg-keepalive", "add", "a", "b", "25")
    assert invoke(mesh, "wg-keepalive", "ls").output.splitlines()[2].split() == ["a", "b", "25"]
    out = invoke(mesh, "wg-quick", "--for", "a").output
    assert "PersistentKeepalive = 25" in out.split("# b\n", 1)[1].split("\n\n", 1)[0]


def test_write_wg_peers(mesh, tmp_path):
    invoke(mesh, "write-wg-peers", "--no-progress")
    text = (tmp_path / "peers-a.nix").read_text()
    lines = text.splitlines()
    assert lines[0] == "["
    assert lines[-1] == "]"
    assert lines[1].startswith('  { name = "b"; allowedIPs = [ "10.10.0.2/32" "fd10::2/128" ]; ')
    assert 'endpoint = "10.8.0.2:51820";' in lines[1]
    assert (tmp_path / "peers-host10.nix").exists()


def test_write_wg_peers_bad_template(mesh, tmp_path):
    result = mesh.invoke(cli, ["write-wg-peers", "--no-progress"],
                         env={"WIREGUARD_PEERS_PATH_TEMPLATE": str(tmp_path / "{nope}.nix")})
    assert result.exit_code == 1
    assert "allowed tokens" in result.output
    assert not (tmp_path / "peers-a.nix").exists()


def test_nix_data(mesh):
    out = invoke(mesh, "nix-data").output
    assert out.startswith("{\n")
    assert 'public = { ip = "203.0.113.1"; ssh_port = 22; wireguard_port = 51820; };' in out


def test_wg_privkey(mesh):
    out = invoke(mesh, "wg-privkey", "a").output.strip()
    assert len(out) == 44 and out.endswith("=")


def test_unknown_machine(mesh):
    for args in (["wg-quick", "--for", "ghost"], ["ssh-config", "--for", "ghost"], ["rm", "ghost"]):
        result = invoke(mesh, *args, ok=False)
        assert result.exit_code == 1
        assert "Could not find machine 'ghost' in database" in result.output
        assert "[Interface]" not in result.output


def test_rm(mesh):
    invoke(mesh, "rm", "b")
    out = invoke(mesh, "ls").output
    assert [l.split()[0] for l in out.splitlines()[2:]] == ["a", "host2", "host10"]


def test_address_ls_and_rm(mesh):
    out = invoke(mesh, "address", "ls").output
    assert [l.split()[0] for l in out.splitlines()[2:]] == ["a", "b"]
    invoke(mesh, "address", "rm", "b", "vpn", "10.8.0.2")
    result = invoke(mesh, "address", "rm", "b", "vpn", "10.8.0.2", ok=False)
    assert result.exit_code == 1
    assert "Could not find address" in result.output


def test_add_missing_default(mesh):
    result = mesh.invoke(cli, ["add", "c"], env={"DEFAULT_OWNER": None})
    assert result.exit_code == 1
    assert "No owner was provided" in result.output


def test_provider(mesh):
    assert invoke(mesh, "provider", "add", "hetzner", "ops@example.com").output.strip() == "1"
    invoke(mesh, "add", "c", "--provider", "1", "--provider-reference", "cx21")
    out = invoke(mesh, "provider", "ls").output
    assert out.splitlines()[2].split() == ["1", "hetzner", "ops@example.com"]


def test_network_and_link_ls(mesh):
    assert invoke(mesh, "network", "ls").output.split()[2:] == ["NONE", "public", "vpn"]
    lines = invoke(mesh, "link", "ls").output.splitlines()
    assert lines[2].split() == ["public", "vpn", "1"]
    invoke(mesh, "link", "rm", "public", "vpn")
    assert len(invoke(mesh, "link", "ls").output.splitlines()) == 2


def test_missing_database_url(tmp_path):
    env_file = tmp_path / "env"
    env_file.write_text("")
    result = CliRunner(env={"INFRABASE_ENV_FILE": str(env_file), "DATABASE_URL": None}).invoke(cli, ["ls"])
    assert result.exit_code == 1
    assert "DATABASE_URL" in result.output

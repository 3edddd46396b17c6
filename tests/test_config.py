"""Tests for flag/environment configuration resolution."""

import pytest

from etcdadmin.config import AdminConfig, load_config, parse_port


def test_defaults():
    config = load_config([], env={})

    assert config == AdminConfig()
    assert config.listen_port == 8080
    assert config.endpoints == ("localhost:2379",)
    assert config.ca_cert == "./cacert.pem"
    assert config.cert == "./cert.pem"
    assert config.key == "./key.pem"
    assert config.debug is False
    assert config.dial_timeout == 5.0
    assert config.request_timeout is None
    assert config.revision_source == 0


def test_environment_used_when_flag_absent():
    env = {
        "LISTEN_PORT": "9090",
        "ETCD_ENDPOINTS": "a:2379, b:2379 ,c:2379",
        "CA_CERT": "/etc/etcd/ca.pem",
        "CERT": "/etc/etcd/client.pem",
        "KEY": "/etc/etcd/client-key.pem",
        "DEBUG": "true",
        "REQUEST_TIMEOUT": "30",
        "REVISION_SOURCE": "2",
    }
    config = load_config([], env=env)

    assert config.listen_port == 9090
    assert config.endpoints == ("a:2379", "b:2379", "c:2379")
    assert config.ca_cert == "/etc/etcd/ca.pem"
    assert config.cert == "/etc/etcd/client.pem"
    assert config.key == "/etc/etcd/client-key.pem"
    assert config.debug is True
    assert config.request_timeout == 30.0
    assert config.revision_source == 2


def test_flag_wins_over_environment():
    env = {"LISTEN_PORT": "9090", "ETCD_ENDPOINTS": "env:2379", "CERT": "env.pem"}
    config = load_config(
        ["--listen-port", "7070", "--etcd-endpoints", "flag:2379", "--cert", "flag.pem", "--debug"],
        env=env,
    )

    assert config.listen_port == 7070
    assert config.endpoints == ("flag:2379",)
    assert config.cert == "flag.pem"
    assert config.debug is True


def test_blank_environment_falls_back_to_default():
    config = load_config([], env={"LISTEN_PORT": "  ", "ETCD_ENDPOINTS": ""})
    assert config.listen_port == 8080
    assert config.endpoints == ("localhost:2379",)


def test_config_is_immutable():
    config = load_config([], env={})
    with pytest.raises(AttributeError):
        config.listen_port = 1


@pytest.mark.parametrize("raw,expected", [("8080", 8080), (":8080", 8080), (9000, 9000)])
def test_parse_port(raw, expected):
    assert parse_port(raw) == expected


@pytest.mark.parametrize(
    "argv,env",
    [
        (["--listen-port", "0"], {}),
        (["--listen-port", "http"], {}),
        ([], {"LISTEN_PORT": "70000"}),
        (["--etcd-endpoints", " , "], {}),
        (["--dial-timeout", "0"], {}),
        (["--request-timeout", "-1"], {}),
        (["--etcd-endpoints", "a:2379,b:2379", "--revision-source", "2"], {}),
    ],
)
def test_invalid_values(argv, env):
    with pytest.raises(ValueError):
        load_config(argv, env=env)

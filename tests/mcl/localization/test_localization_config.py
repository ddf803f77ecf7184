"""Unit tests for localization configuration loading and validation."""

import json

import pytest

from mcl.localization import (
    InitialPoseConfig,
    LaserModelConfig,
    LocalizationConfig,
    OdomModelConfig,
    load_config,
)


def minimal_dict(**extra):
    data = {"odom_model": {}, "laser_model": {}}
    data.update(extra)
    return data


class TestFromDict:
    def test_defaults(self):
        config = LocalizationConfig.from_dict(minimal_dict())
        assert config.num_particles == 500
        assert config.odom_model.map_frame == "map"
        assert config.odom_model.base_link_frame == "base_link"
        assert config.laser_model.topic == "scan"
        assert config.initial_pose is None
        assert config.particles_topic == "ed/localization/particles"

    def test_nested_groups(self):
        config = LocalizationConfig.from_dict({
            "num_particles": 200,
            "initial_pose_topic": "initialpose",
            "odom_model": {"map_frame": "world", "odom_frame": "wheel_odom", "alpha1": 0.2},
            "laser_model": {"topic": "base_laser/scan", "beam_step": 2, "num_threads": 4},
        })
        assert config.num_particles == 200
        assert config.initial_pose_topic == "initialpose"
        assert config.odom_model.map_frame == "world"
        assert config.odom_model.alpha1 == 0.2
        assert config.laser_model.topic == "base_laser/scan"
        assert config.laser_model.num_threads == 4

    def test_initial_pose_rz_alias(self):
        config = LocalizationConfig.from_dict(
            minimal_dict(initial_pose={"x": 1.0, "y": 2.0, "rz": 0.5})
        )
        assert config.initial_pose == InitialPoseConfig(x=1.0, y=2.0, yaw=0.5)

    def test_initial_pose_rz_and_yaw_conflict(self):
        with pytest.raises(ValueError, match="rz"):
            InitialPoseConfig.from_dict({"rz": 0.1, "yaw": 0.2})

    @pytest.mark.parametrize("group", ["odom_model", "laser_model"])
    def test_missing_required_group(self, group):
        data = minimal_dict()
        del data[group]
        with pytest.raises(ValueError, match=group):
            LocalizationConfig.from_dict(data)

    def test_unknown_root_key(self):
        with pytest.raises(ValueError, match="num_particels"):
            LocalizationConfig.from_dict(minimal_dict(num_particels=10))

    def test_unknown_group_key(self):
        with pytest.raises(ValueError, match="laser_model"):
            LocalizationConfig.from_dict({"odom_model": {}, "laser_model": {"sigma": 0.1}})

    def test_to_dict_roundtrip(self):
        config = LocalizationConfig.from_dict(
            minimal_dict(num_particles=42, initial_pose={"x": 3.0, "y": 0.0, "rz": 1.0})
        )
        assert LocalizationConfig.from_dict(config.to_dict()) == config


class TestValidation:
    def test_num_particles(self):
        with pytest.raises(ValueError, match="num_particles"):
            LocalizationConfig(num_particles=0)

    def test_negative_alpha(self):
        with pytest.raises(ValueError, match="alpha2"):
            OdomModelConfig(alpha2=-1.0)

    def test_empty_frame(self):
        with pytest.raises(ValueError, match="odom_frame"):
            OdomModelConfig(odom_frame="")

    def test_sigma_hit(self):
        with pytest.raises(ValueError, match="sigma_hit"):
            LaserModelConfig(sigma_hit=0.0)

    def test_beam_step_must_be_integer(self):
        with pytest.raises(ValueError, match="beam_step"):
            LaserModelConfig(beam_step=1.5)

    @pytest.mark.parametrize("name", ["beam_step", "num_threads", "chunk_size"])
    def test_bool_is_not_a_count(self, name):
        with pytest.raises(ValueError, match=name):
            LaserModelConfig(**{name: True})

    def test_bool_particle_count_rejected(self):
        with pytest.raises(ValueError, match="num_particles"):
            LocalizationConfig(num_particles=True)
        with pytest.raises(ValueError, match="num_particles"):
            LocalizationConfig.from_dict(minimal_dict(num_particles=False))

    def test_bool_alpha_rejected(self):
        with pytest.raises(ValueError, match="alpha1"):
            OdomModelConfig(alpha1=True)

    def test_reset_resolution(self):
        with pytest.raises(ValueError, match="reset_xy_resolution"):
            LocalizationConfig(reset_xy_resolution=0.0)


class TestLoadConfig:
    def test_load_json(self, tmp_path):
        path = tmp_path / "localization.json"
        path.write_text(json.dumps(minimal_dict(num_particles=300)))
        config = load_config(path)
        assert config.num_particles == 300

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json")
        with pytest.raises(ValueError, match="Malformed"):
            load_config(path)

    def test_root_must_be_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="object"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.json")

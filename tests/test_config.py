from __future__ import annotations

import pytest

from liftbank import BankSettings, ControlMode


class TestBankSettings:
    def test_defaults_follow_the_reference_building(self):
        settings = BankSettings()
        assert settings.num_cars == 4
        assert settings.num_floors == 13
        assert settings.allowed_floors_for(2) == (-1, 1, 2, 7, 8, 9, 10, 11, 12, 13)
        assert settings.allowed_floors_for(9) == (1,)
        assert settings.control_mode is ControlMode.AUTO

    def test_speed_levels_map_to_stories_per_second(self):
        slow = BankSettings(elevator_speed=1)
        fast = BankSettings(elevator_speed=10)
        assert slow.max_speed == pytest.approx(3.5 * 0.4)
        assert fast.max_speed == pytest.approx(3.5 * 20)
        assert slow.arrival_epsilon == pytest.approx(0.07)

    @pytest.mark.parametrize(
        "kwargs",
        [{"num_floors": 1}, {"num_floors": 2.5}, {"elevator_speed": 11}, {"passenger_load": 7}, {"num_cars": 0}],
    )
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValueError):
            BankSettings(**kwargs)

    def test_from_dict_converts_json_shapes(self):
        settings = BankSettings.from_dict(
            {
                "num_floors": 8,
                "control_mode": "manual",
                "allowed_floors": {"1": [1, 2, 3], "2": ["1", "8"]},
                "geometry": {"lobby_width": 6.0},
                "rates": {"normal_ride_cost": 0.5},
            }
        )
        assert settings.num_floors == 8
        assert settings.control_mode is ControlMode.MANUAL
        assert settings.allowed_floors == {1: [1, 2, 3], 2: [1, 8]}
        assert settings.geometry.lobby_width == 6.0
        assert settings.rates.normal_ride_cost == 0.5

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown settings"):
            BankSettings.from_dict({"num_lifts": 3})

    def test_from_dict_rejects_unknown_control_mode(self):
        with pytest.raises(ValueError):
            BankSettings.from_dict({"control_mode": "sideways"})

from pathlib import Path

from taptab.services.backend import get_menu_backend
from taptab.tasks import export_menu_to_excel, health_check
from test.utils.menu_data import create_menu, run


def test_export_task_writes_workbook(tmp_path):
    data = run(create_menu(get_menu_backend()))

    result = export_menu_to_excel.apply(args=(data["restaurant"]["id"],)).get()

    assert result["success"] is True
    assert result["message"] == "4 dishes exported"
    assert Path(result["path"]) == tmp_path / "data" / "menu_cafe-sol.xlsx"
    assert Path(result["path"]).is_file()
    assert result["processing_time_seconds"] >= 0


def test_export_task_unknown_restaurant():
    result = export_menu_to_excel.apply(args=("missing",)).get()

    assert result["success"] is False
    assert "not found" in result["message"]


def test_worker_health_task():
    assert health_check.apply().get()["status"] == "healthy"

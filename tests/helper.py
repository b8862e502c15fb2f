def db_with_scalars_first(mocker, value):
    res = mocker.Mock()
    res.scalars.return_value.first.return_value = value
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=res)
    return db, res


def db_with_scalar(mocker, value):
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=value)
    return db


def mock_session(mocker):
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()
    db.scalar = mocker.AsyncMock()
    db.scalars = mocker.AsyncMock()
    db.flush = mocker.AsyncMock()
    db.refresh = mocker.AsyncMock()
    db.delete = mocker.AsyncMock()
    return db


def create_role(mocker, name: str):
    role = mocker.Mock()
    role.name = name
    return role

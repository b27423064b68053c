# conciliador

Building blocks for a card payment reconciliation pipeline. The package
provides the following pieces:

- It reads sales from restaurant kiosk servers.
- It decides which of them are new, changed or already stored.
- It keeps fetched payments and run reports in MongoDB.
- It writes transactions into the SIR `ST_Transaccional` table on SQL Server.
- It ships one command, a scheduled job that asks a central reconciliation API
  to process a given day.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Settings come from environment variables. If a `.env` file exists in the
working directory, it is loaded first. It never overrides variables that are
already set. A variable that is not set falls back to `no_configurado`, except
where another default is listed below.

| Variable                   | Read by                                        | Default          |
|----------------------------|------------------------------------------------|------------------|
| `MONGO_URI`                | every loader                                   | `no_configurado` |
| `MONGO_DATABASE`           | every loader                                   | `no_configurado` |
| `NATS_URI`                 | every loader                                   | `no_configurado` |
| `TIMEZONE`                 | every loader                                   | `no_configurado` |
| `SIR_DATABASE`             | `load_kiosco_config`, `load_sir_writer_config` | `no_configurado` |
| `HTTP_SERVER`              | `load_report_config`                           | `:8080`          |
| `TIME_OFFSET`              | `load_invoker_config`                          | `0d`             |
| `CONCILIADOR_API`          | `load_invoker_config`                          | `no_configurado` |
| `CONCILIADOR_PUSH_SERVICE` | `load_invoker_config`                          | `no_configurado` |

Each loader in `conciliador.config` returns a frozen dataclass:

| Loader                     | Returns           |
|----------------------------|-------------------|
| `load_invoker_config()`    | `InvokerConfig`   |
| `load_kiosco_config()`     | `KioscoConfig`    |
| `load_report_config()`     | `ReportConfig`    |
| `load_sir_writer_config()` | `SirWriterConfig` |

The module also provides `get_env(key, default)` and `load_dotenv_file()`.

## The invoker command

```
conciliador-invoker
```

The command accepts no options other than `--help`. It proceeds as follows:

1. It loads the invoker configuration.
2. It opens a MongoDB client for `MONGO_URI`.
3. It takes the current date in `TIMEZONE` and shifts it by `TIME_OFFSET`.
4. It POSTs `{"fecha": "YYYY-MM-DD", "service": CONCILIADOR_PUSH_SERVICE}` as JSON to `CONCILIADOR_API`.
5. It prints a summary of the answer and closes the client.

`TIMEZONE` must be one of the following:

- an IANA zone name such as `America/Guayaquil`;
- `UTC`, or an empty value, which both mean UTC;
- `Local`, which means the machine's local zone.

`TIME_OFFSET` is a whole number of days followed by `d`, such as `-1d`. An
offset that does not end in `d`, or that does not hold an integer, is printed
as an error, and no request is sent.

The summary depends on the response:

- On a 200 response, the summary holds the request and the status.
- On any other response, the summary also holds the response body as minified JSON.

The same steps are available from Python as `conciliador.invoker.run(cfg, now=None)`.
`build_payload`, `parse_day_duration` and `send_http_request` are available
separately.

## Library overview

- `conciliador.utils` holds the shared helpers:
  - `format_duration` takes a `timedelta` or a number of seconds. It returns `2m5s`, `2m`, `5s` or `350ms`.
  - `string_to_int` parses a signed 64-bit decimal and returns 0 when the text is not one.
  - `is_empty_string` tells whether text is blank.
  - `debug` writes debug output and `set_debug` turns it on or off.
  - `log` is the coloured `conciliador` logger, which writes to stdout.
- `conciliador.sql` wraps any DB-API connection:
  - `open_connection(conn_string, connector)` calls `connector(conn_string)` and checks the result with `SELECT 1`.
  - It returns a `SQLServerConnection`, which is a context manager.
  - The connection offers `query`, `query_row` and `execute`, and `begin`, `commit` and `rollback` for transactions.
  - Outside a transaction, `execute` commits at once.
- `conciliador.mongo.new_mongo_client(uri)` creates a `pymongo.MongoClient` with ten second timeouts.
- `conciliador.models` holds the payment record types:
  - `KioscoPayment` has `from_json` and `to_json`, which use the kiosk server's key names.
  - `ReportPaymentResponse.from_json` reads a page of `ReportPayment` items, each with its `ReportStore`.
- `conciliador.repository` holds the MongoDB layers:
  - `PaymentRepository` performs ordered bulk upserts by `uniqueId` and returns stored `MerchantPaymentHash` values.
  - `ReportRepository` works on the `reports` and `data-reports` collections.
  - `InvokerRepository` is the invoker job's handle.
- `conciliador.kiosco` holds the kiosk pieces:
  - `RestaurantCache` maps local ids to merchant ids.
  - `load_kiosk_addresses` returns `IpAddressRestaurant` rows.
  - `generate_token_api` logs in and raises `TokenError` on failure.
  - `fetch_sales` returns a list of `KioscoPayment`.
  - `classify_operation` returns an `Operation` value: `INSERT`, `UPDATE` or `IGNORE`.
  - `batch_items` and the field normalisers are also here.
- `conciliador.sir_writer` writes to SIR:
  - `SirWriter.save_transactions` applies `Transaction` objects in batches of 25 across 10 worker threads.
  - It returns the total `BatchCounts`.
  - The statements use `%(name)s` parameters, so the connector must accept that style.
  - `SirDataCache` looks up restaurant data by MID and card groups by BIN range.
- `conciliador.report.ReportService` records the start, entries and completion of runs. Storage failures are logged, and the method returns `False`.

Examples of the normalisation helpers:

```python
from conciliador.kiosco import create_http_address, format_hora, formatear_tipo_tarjeta
from conciliador.utils import format_duration, is_empty_string, string_to_int

create_http_address("10.0.0.5", "8080")   # "http://10.0.0.5:8080"
create_http_address("10.0.0.5", "")       # "http://10.0.0.5"
formatear_tipo_tarjeta(" mastercard ")    # "MAST"
formatear_tipo_tarjeta("Union Pay")       # "UPAY"
format_hora("14:35:20.123")               # "143520"
format_duration(125)                      # "2m5s"
string_to_int("abc")                      # 0
is_empty_string("   ")                    # True
```

## What the package does not do

- It runs no long-lived services. Nothing subscribes to or publishes on a
  message bus, even though `NATS_URI` is read into the configuration.
- It serves no HTTP API for reports. `HTTP_SERVER` is only read into `ReportConfig`.
- No single call fetches every kiosk, stores the payments and forwards them to
  SIR. The pieces for that are provided separately.
- It bundles no SQL Server driver. Supply a DB-API `connector` yourself.
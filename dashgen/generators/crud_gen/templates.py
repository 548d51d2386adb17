"""Jinja2 templates for the generated Go sources.

Templates are written with four-space indentation; ``_go`` converts leading
indentation to tabs so the output matches gofmt.
"""
import re
from typing import Dict

_LEADING_INDENT = re.compile(r"^((?:    )+)", re.MULTILINE)


def _go(text: str) -> str:
    return _LEADING_INDENT.sub(lambda m: "\t" * (len(m.group(1)) // 4), text)


MODEL_INIT = _go('''package {{ package }}

import (
    "gitlab.silvertiger.tech/go-sdk/go-mongodb/collection"
{% for path in index_imports(fields, indexes, module) %}
    "{{ path }}"
{% endfor %}
    "go.mongodb.org/mongo-driver/mongo"
)

var (
    {{ entity_lower }}Collection        *collection.MongoDBGenericCollection[{{ entity }}]
    {{ entity_lower }}DeletedCollection *collection.MongoDBGenericCollection[{{ entity }}]
    {{ entity_lower }}Repository        {{ repo_interface }}
)

// {{ init_func }} binds the {{ entity }} collections to the database and creates indexes
func {{ init_func }}(database *mongo.Database) error {
    {{ entity_lower }}Collection = collection.NewMongoDBGenericCollection[{{ entity }}]("{{ db_name }}").(*collection.MongoDBGenericCollection[{{ entity }}])
    {{ entity_lower }}Collection.SetDatabase(database)

    {{ entity_lower }}DeletedCollection = collection.NewMongoDBGenericCollection[{{ entity }}]("{{ deleted_db_name }}").(*collection.MongoDBGenericCollection[{{ entity }}])
    {{ entity_lower }}DeletedCollection.SetDatabase(database)

    // Initialize repository
    {{ entity_lower }}Repository = &{{ repo_type }}{}

    // Create indexes
    if err := {{ index_func }}(); err != nil {
        return err
    }

    return nil
}

// {{ repo_getter }} returns the initialized repository instance
func {{ repo_getter }}() {{ repo_interface }} {
    return {{ entity_lower }}Repository
}

func {{ index_func }}() error {
{{ generate_field_indexes(fields, entity_lower) }}

{{ generate_compound_indexes(indexes, entity_lower) }}

    return nil
}
''')

REPOSITORY = _go('''package {{ package }}

// {{ repo_interface }} defines the persistence operations for {{ entity }}
type {{ repo_interface }} interface {
    Create(data *{{ entity }}) (*{{ entity }}, error)
    GetBy{{ entity }}ID({{ entity_lower }}ID string) (*{{ entity }}, error)
    List(filter interface{}, offset, limit int64, sort map[string]int) ([]*{{ entity }}, error)
    Count(filter interface{}) (int64, error)
    UpdateBy{{ entity }}ID({{ entity_lower }}ID string, data *{{ entity }}) (*{{ entity }}, error)
    DeleteBy{{ entity }}ID({{ entity_lower }}ID string) error
}

// {{ repo_type }} implements {{ repo_interface }} on top of the {{ db_name }} collection
type {{ repo_type }} struct{}

func (r *{{ repo_type }}) Create(data *{{ entity }}) (*{{ entity }}, error) {
    return {{ entity_lower }}Collection.InsertOne(data)
}

func (r *{{ repo_type }}) GetBy{{ entity }}ID({{ entity_lower }}ID string) (*{{ entity }}, error) {
    return {{ entity_lower }}Collection.FindOne({{ entity }}{ {{ entity }}ID: {{ entity_lower }}ID })
}

func (r *{{ repo_type }}) List(filter interface{}, offset, limit int64, sort map[string]int) ([]*{{ entity }}, error) {
    return {{ entity_lower }}Collection.Find(filter, offset, limit, sort)
}

func (r *{{ repo_type }}) Count(filter interface{}) (int64, error) {
    return {{ entity_lower }}Collection.Count(filter)
}

func (r *{{ repo_type }}) UpdateBy{{ entity }}ID({{ entity_lower }}ID string, data *{{ entity }}) (*{{ entity }}, error) {
    return {{ entity_lower }}Collection.UpdateOne({{ entity }}{ {{ entity }}ID: {{ entity_lower }}ID }, data)
}

// DeleteBy{{ entity }}ID soft deletes by moving the document to {{ deleted_db_name }}
func (r *{{ repo_type }}) DeleteBy{{ entity }}ID({{ entity_lower }}ID string) error {
    existing, err := {{ entity_lower }}Collection.FindOne({{ entity }}{ {{ entity }}ID: {{ entity_lower }}ID })
    if err != nil {
        return err
    }
    if _, err = {{ entity_lower }}DeletedCollection.InsertOne(existing); err != nil {
        return err
    }
    return {{ entity_lower }}Collection.DeleteOne({{ entity }}{ {{ entity }}ID: {{ entity_lower }}ID })
}
''')

ACTION = _go('''package action

import (
    "gitlab.silvertiger.tech/go-sdk/go-common/common"
    "{{ module }}/{{ group_path }}"
)

func {{ entity_lower }}Failure(err error) *common.APIResponse[*{{ package }}.{{ entity }}] {
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status:  common.APIStatus.Error,
        Message: err.Error(),
    }
}

// Create{{ entity }} stores a new {{ entity_lower }}
func Create{{ entity }}(data *{{ package }}.{{ entity }}) *common.APIResponse[*{{ package }}.{{ entity }}] {
    created, err := {{ package }}.{{ repo_getter }}().Create(data)
    if err != nil {
        return {{ entity_lower }}Failure(err)
    }
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status:  common.APIStatus.Ok,
        Data:    []*{{ package }}.{{ entity }}{created},
        Message: "Create {{ entity_lower }} successfully",
    }
}

// Get{{ entity }}By{{ entity }}ID loads one {{ entity_lower }}
func Get{{ entity }}By{{ entity }}ID({{ entity_lower }}ID string) *common.APIResponse[*{{ package }}.{{ entity }}] {
    found, err := {{ package }}.{{ repo_getter }}().GetBy{{ entity }}ID({{ entity_lower }}ID)
    if err != nil {
        return {{ entity_lower }}Failure(err)
    }
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status: common.APIStatus.Ok,
        Data:   []*{{ package }}.{{ entity }}{found},
    }
}

// List{{ entity_plural }} returns one page of {{ entity_lower }} records and the total count
func List{{ entity_plural }}(query *common.Query[{{ package }}.{{ entity }}]) *common.APIResponse[*{{ package }}.{{ entity }}] {
    repo := {{ package }}.{{ repo_getter }}()
    items, err := repo.List(query.Filter, query.Offset, query.Limit, query.Sort)
    if err != nil {
        return {{ entity_lower }}Failure(err)
    }
    total, err := repo.Count(query.Filter)
    if err != nil {
        return {{ entity_lower }}Failure(err)
    }
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status: common.APIStatus.Ok,
        Data:   items,
        Total:  total,
    }
}

// Update{{ entity }} replaces the stored {{ entity_lower }}
func Update{{ entity }}({{ entity_lower }}ID string, data *{{ package }}.{{ entity }}) *common.APIResponse[*{{ package }}.{{ entity }}] {
    updated, err := {{ package }}.{{ repo_getter }}().UpdateBy{{ entity }}ID({{ entity_lower }}ID, data)
    if err != nil {
        return {{ entity_lower }}Failure(err)
    }
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status:  common.APIStatus.Ok,
        Data:    []*{{ package }}.{{ entity }}{updated},
        Message: "Update {{ entity_lower }} successfully",
    }
}

// Delete{{ entity }} soft deletes a {{ entity_lower }}
func Delete{{ entity }}({{ entity_lower }}ID string) *common.APIResponse[*{{ package }}.{{ entity }}] {
    if err := {{ package }}.{{ repo_getter }}().DeleteBy{{ entity }}ID({{ entity_lower }}ID); err != nil {
        return {{ entity_lower }}Failure(err)
    }
    return &common.APIResponse[*{{ package }}.{{ entity }}]{
        Status:  common.APIStatus.Ok,
        Message: "Delete {{ entity_lower }} successfully",
    }
}
''')

API = _go('''package api

import (
{% if has_required_fields(fields, "string") %}
    "strings"
{% endif %}
{% if uses_rule(fields, "email", "string") %}
    "regexp"
{% endif %}

    "gitlab.silvertiger.tech/go-sdk/go-common/common"
    "gitlab.silvertiger.tech/go-sdk/go-common/request"
    "gitlab.silvertiger.tech/go-sdk/go-common/responder"
    "{{ module }}/{{ constants_import }}"
    "{{ module }}/internal/action"
    "{{ module }}/{{ group_path }}"
)
{% set validation = generate_validation(fields, entity_lower) %}

// Create{{ entity }} creates a new {{ entity_lower }}
func Create{{ entity }}(req request.APIRequest, res responder.APIResponder) error {
    var {{ entity_lower }}Data {{ package }}.{{ entity }}
    if err := req.ParseBody(&{{ entity_lower }}Data); err != nil {
        return res.Respond(common.NewErrorResponse(common.APIStatus.Invalid, "INVALID_REQUEST_BODY", "Failed to parse request body: "+err.Error()))
    }

{% if validation %}
{{ validation }}

{% endif %}
    response := action.Create{{ entity }}(&{{ entity_lower }}Data)
    return res.Respond(response)
}

// Get{{ entity }}By{{ entity }}ID retrieves a {{ entity_lower }} by its {{ entity }}ID
func Get{{ entity }}By{{ entity }}ID(req request.APIRequest, res responder.APIResponder) error {
    {{ entity_lower }}ID := req.GetParam({{ constants_package }}.{{ constant_name }})
    if {{ entity_lower }}ID == "" {
        return res.Respond(common.NewErrorResponse(common.APIStatus.Invalid, "VALIDATION_FAILED", "{{ constant_value }} parameter is required"))
    }

    response := action.Get{{ entity }}By{{ entity }}ID({{ entity_lower }}ID)
    return res.Respond(response)
}

// Query{{ entity_plural }} retrieves a list of {{ entity_lower }} records with optional filtering
func Query{{ entity_plural }}(req request.APIRequest, res responder.APIResponder) error {
    var query common.Query[{{ package }}.{{ entity }}]
    if err := req.ParseBody(&query); err != nil {
        return res.Respond(common.FromError(err))
    }

    return res.Respond(action.List{{ entity_plural }}(&query))
}

// Update{{ entity }} updates an existing {{ entity_lower }}
func Update{{ entity }}(req request.APIRequest, res responder.APIResponder) error {
    {{ entity_lower }}ID := req.GetParam({{ constants_package }}.{{ constant_name }})
    if {{ entity_lower }}ID == "" {
        return res.Respond(common.NewErrorResponse(common.APIStatus.Invalid, "VALIDATION_FAILED", "{{ constant_value }} parameter is required"))
    }

    var {{ entity_lower }}Data {{ package }}.{{ entity }}
    if err := req.ParseBody(&{{ entity_lower }}Data); err != nil {
        return res.Respond(common.NewErrorResponse(common.APIStatus.Invalid, "INVALID_REQUEST_BODY", "Failed to parse request body: "+err.Error()))
    }

{% if validation %}
{{ validation }}

{% endif %}
    response := action.Update{{ entity }}({{ entity_lower }}ID, &{{ entity_lower }}Data)
    return res.Respond(response)
}

// Delete{{ entity }} deletes a {{ entity_lower }} by ID
func Delete{{ entity }}(req request.APIRequest, res responder.APIResponder) error {
    {{ entity_lower }}ID := req.GetParam({{ constants_package }}.{{ constant_name }})
    if {{ entity_lower }}ID == "" {
        return res.Respond(common.NewErrorResponse(common.APIStatus.Invalid, "VALIDATION_FAILED", "{{ constant_value }} parameter is required"))
    }

    response := action.Delete{{ entity }}({{ entity_lower }}ID)
    return res.Respond(response)
}
{% if uses_rule(fields, "email", "string") %}

var {{ entity_lower }}EmailPattern = regexp.MustCompile(`^[^@\\s]+@[^@\\s]+\\.[^@\\s]+$`)

func {{ email_helper_name(entity_lower) }}(email string) bool {
    return {{ entity_lower }}EmailPattern.MatchString(email)
}
{% endif %}
''')

CLIENT = _go('''package client

import (
    "gitlab.silvertiger.tech/go-sdk/go-common/common"
    "{{ module }}/{{ group_path }}"
)

// Create{{ entity }} creates a new {{ entity_lower }}
func (c *BackendServiceClient) Create{{ entity }}(data *{{ package }}.{{ entity }}) *common.APIResponse[*{{ package }}.{{ entity }}] {
    response := &common.APIResponse[*{{ package }}.{{ entity }}]{}
    c.makeRequest("POST", "{{ route_path }}", nil, data, response)

    return response
}

// Get{{ entity }} retrieves a {{ entity_lower }} by its {{ constant_value }}
func (c *BackendServiceClient) Get{{ entity }}(id string) *common.APIResponse[*{{ package }}.{{ entity }}] {
    params := map[string]string{
        "{{ constant_value }}": id,
    }
    response := &common.APIResponse[*{{ package }}.{{ entity }}]{}
    c.makeRequest("GET", "{{ route_path }}", params, nil, response)

    return response
}

// List{{ entity_plural }} retrieves a list of {{ entity_lower }} records with filtering
func (c *BackendServiceClient) List{{ entity_plural }}(query *common.Query[{{ package }}.{{ entity }}]) *common.APIResponse[*{{ package }}.{{ entity }}] {
    response := &common.APIResponse[*{{ package }}.{{ entity }}]{}
    c.makeRequest("QUERY", "{{ list_route_path }}", nil, query, response)

    return response
}

// Update{{ entity }} updates an existing {{ entity_lower }}
func (c *BackendServiceClient) Update{{ entity }}(id string, data *{{ package }}.{{ entity }}) *common.APIResponse[*{{ package }}.{{ entity }}] {
    params := map[string]string{
        "{{ constant_value }}": id,
    }
    response := &common.APIResponse[*{{ package }}.{{ entity }}]{}
    c.makeRequest("PUT", "{{ route_path }}", params, data, response)

    return response
}

// Delete{{ entity }} deletes a {{ entity_lower }} by ID
func (c *BackendServiceClient) Delete{{ entity }}(id string) *common.APIResponse[any] {
    params := map[string]string{
        "{{ constant_value }}": id,
    }
    response := &common.APIResponse[any]{}
    c.makeRequest("DELETE", "{{ route_path }}", params, nil, response)

    return response
}
''')

ROUTE_IMPORT = _go('''    "{{ module }}/{{ group_path }}"
''')

ROUTE_INIT = _go('''    if err := {{ package }}.{{ init_func }}(database); err != nil {
        return err
    }
''')

ROUTE_HANDLERS = _go('''    // Register {{ entity }} API routes
    server.SetHandler(common.APIMethod.POST, "{{ route_path }}", api.Create{{ entity }})
    server.SetHandler(common.APIMethod.GET, "{{ route_path }}", api.Get{{ entity }}By{{ entity }}ID)
    server.SetHandler(common.APIMethod.QUERY, "{{ list_route_path }}", api.Query{{ entity_plural }})
    server.SetHandler(common.APIMethod.PUT, "{{ route_path }}", api.Update{{ entity }})
    server.SetHandler(common.APIMethod.DELETE, "{{ route_path }}", api.Delete{{ entity }})
''')

CONSTANT_ENTRY = _go('''    {{ name }} = "{{ value }}"
''')

CONSTANTS_FILE = _go('''package {{ package }}

// API parameter constants
const (
{% for entry in entries %}
    {{ entry.name }} = "{{ entry.value }}"
{% endfor %}
)
''')

MAIN = _go('''package main

import (
    "fmt"
    "log"
    "sync"
    "time"

    "github.com/go-redis/redis/v8"
    "go.mongodb.org/mongo-driver/mongo"

    "gitlab.silvertiger.tech/go-sdk/go-backend/backend"
    "gitlab.silvertiger.tech/go-sdk/go-cache/rcache"
    "gitlab.silvertiger.tech/go-sdk/go-common/common"
    "gitlab.silvertiger.tech/go-sdk/go-common/request"
    "gitlab.silvertiger.tech/go-sdk/go-common/responder"
    "gitlab.silvertiger.tech/go-sdk/go-common/server"
    "gitlab.silvertiger.tech/go-sdk/go-mongodb/client"
    "{{ module }}/internal/api"
    "{{ module }}/internal/conf"
{% for line in imports %}
{{ line }}
{% endfor %}
    {{ markers.imports }}
)

type infoData struct {
    Service     string    `json:"service"`
    Environment string    `json:"environment"`
    Version     string    `json:"version"`
    StartTime   time.Time `json:"startTime"`
}

var globalInfo *infoData

func info(req request.APIRequest, res responder.APIResponder) error {
    return res.Respond(&common.APIResponse[infoData]{
        Status:  common.APIStatus.Ok,
        Data:    []infoData{*globalInfo},
        Message: "Service runs normally.",
    })
}

func onMainDBConnected(database *mongo.Database) error {
    fmt.Println("Successfully connected to MongoDB!")

    // Initialize all models
{% for call in inits %}
{{ call }}
{% endfor %}
    {{ markers.init }}
    return nil
}

func initMongoClient() {
    mainDBConfig := client.Configuration{
        Username:      conf.Conf.DBConfig.MainDB.Username,
        Password:      conf.Conf.DBConfig.MainDB.Password,
        Address:       conf.Conf.DBConfig.MainDB.Address,
        DBName:        conf.Conf.DBConfig.MainDB.DBName,
        AuthDB:        conf.Conf.DBConfig.MainDB.AuthDB,
        AuthMechanism: conf.Conf.DBConfig.MainDB.AuthMechanism,
        DoWriteTest:   true,
    }
    mongoClient := client.NewMongoClient(conf.Conf.BackendConfig.BackendApp.ServiceName, mainDBConfig, onMainDBConnected)

    if err := mongoClient.Connect(); err != nil {
        log.Fatalf("Failed to connect to MongoDB: %v", err)
    }
}

func initRedisClient() {
    if conf.Conf.DBConfig.KeyDB == nil {
        return
    }

    redisConfig := &rcache.Configuration{
        Name: conf.Conf.BackendConfig.BackendApp.ServiceName,
        Option: &redis.Options{
            Addr:     conf.Conf.DBConfig.KeyDB.Address,
            Username: conf.Conf.DBConfig.KeyDB.Username,
            Password: conf.Conf.DBConfig.KeyDB.Password,
            DB:       conf.Conf.DBConfig.KeyDB.DB,
        },
        Required: true,
    }

    if _, err := rcache.NewClient(redisConfig); err != nil {
        fmt.Printf("Failed to initialize Redis client for cache: %v\\n", err)
    }
}

func main() {
    conf.NewConfig()

    globalInfo = &infoData{
        Service:     conf.Conf.BackendConfig.BackendApp.ServiceName,
        Version:     conf.Conf.Version,
        Environment: conf.Conf.Env,
        StartTime:   time.Now(),
    }

    initMongoClient()
    initRedisClient()

    server := server.NewServer(server.ServerConfig{
        Protocol: conf.Conf.Protocol,
    })

    backend.NewBackend(server, conf.Conf.BackendConfig.BackendApp.Username, conf.Conf.BackendConfig.BackendApp.Password, conf.Conf.BackendConfig.BackendApp.SecretKey)

    server.SetHandler(common.APIMethod.GET, "/api-info", info)

    // Register API routes for all entities
{% for block in routes %}
{{ block }}
{% endfor %}
    {{ markers.routes }}

    server.Expose(conf.Conf.Port)

    var wg sync.WaitGroup
    wg.Add(1)
    go server.Start(&wg)

    wg.Wait()
}
''')

TEMPLATES: Dict[str, str] = {
    "model_init": MODEL_INIT,
    "repository": REPOSITORY,
    "action": ACTION,
    "api": API,
    "client": CLIENT,
    "routes/import": ROUTE_IMPORT,
    "routes/init": ROUTE_INIT,
    "routes/handlers": ROUTE_HANDLERS,
    "constants/entry": CONSTANT_ENTRY,
    "constants/file": CONSTANTS_FILE,
    "main": MAIN,
}
